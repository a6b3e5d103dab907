from .listener_state import ListenerState as ListenerState
from .network_manager import NetworkManager as NetworkManager
from .subscriber_list import (
    Handler as Handler,
    SubscriberList as SubscriberList,
)
