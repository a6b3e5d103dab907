from .message_codec import (
    HEADER_LENGTH as HEADER_LENGTH,
    decode as decode,
    encode as encode,
    pack_address as pack_address,
)
