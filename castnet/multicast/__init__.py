from .endpoint_state import (
    Active as Active,
    EndpointState as EndpointState,
    Uninitialized as Uninitialized,
)
from .multicast_endpoint import MulticastEndpoint as MulticastEndpoint
