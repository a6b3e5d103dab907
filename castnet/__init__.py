from .codec import (
    HEADER_LENGTH as HEADER_LENGTH,
    decode as decode,
    encode as encode,
)
from .env import (
    Env as Env,
    load_env as load_env,
)
from .errors import (
    AlreadyListeningError as AlreadyListeningError,
    BindError as BindError,
    CastError as CastError,
    InvalidAddressError as InvalidAddressError,
    JoinError as JoinError,
    MalformedPayloadError as MalformedPayloadError,
    NoActiveInterfaceError as NoActiveInterfaceError,
    NotListeningError as NotListeningError,
    PacketTooShortError as PacketTooShortError,
    ReceiveFailure as ReceiveFailure,
    SendFailure as SendFailure,
)
from .interfaces import (
    get_connected_interface_addresses as get_connected_interface_addresses,
    get_fastest_interface_address as get_fastest_interface_address,
    get_local_ipv4_addresses as get_local_ipv4_addresses,
)
from .manager import (
    ListenerState as ListenerState,
    NetworkManager as NetworkManager,
)
from .models import (
    Message as Message,
    MessageProtocol as MessageProtocol,
)
from .multicast import MulticastEndpoint as MulticastEndpoint
