"""
Multicast Messaging Error Hierarchy

Categorized exceptions for the codec, the multicast endpoint and the
network manager. Errors are classified by:
- Category: What kind of error (network, protocol, state, interface)
- Severity: How serious (transient, degraded, fatal)

The receive loop uses the severity to decide whether to keep listening
(decode failures) or stop (socket failures).
"""

import traceback
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class ErrorSeverity(Enum):
    """How serious is this error?"""

    TRANSIENT = auto()
    """One packet or one send failed. The channel keeps working."""

    DEGRADED = auto()
    """A peer or a caller misbehaved. The channel keeps working."""

    FATAL = auto()
    """The socket is unusable. Listening stops."""


class ErrorCategory(Enum):
    """What kind of error is this?"""

    NETWORK = auto()
    """Bind, join, send and receive failures reported by the OS."""

    PROTOCOL = auto()
    """Packets or messages that violate the wire format."""

    STATE = auto()
    """Operations called in the wrong listener state."""

    INTERFACE = auto()
    """Local network interface lookup failures."""


@dataclass
class CastError(Exception):
    """
    Base exception for multicast messaging errors.

    All errors carry:
    - message: Human-readable description
    - category: What kind of error
    - severity: How serious
    - context: Additional debugging info
    - cause: Original exception if wrapping

    Example:
        raise BindError(
            port=6100,
            cause=err,
        )
    """

    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    context: dict[str, Any] = field(default_factory=dict)
    cause: BaseException | None = None

    def __post_init__(self):
        self._traceback = traceback.format_stack()[:-1]

    def __str__(self) -> str:
        ctx = f" {self.context}" if self.context else ""
        cause = ""
        if self.cause:
            cause_str = str(self.cause)
            cause_type = type(self.cause).__name__
            if cause_str:
                cause = f" (caused by {cause_type}: {cause_str})"
            else:
                cause = f" (caused by {cause_type})"
        return f"[{self.category.name}/{self.severity.name}] {self.message}{ctx}{cause}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"category={self.category}, "
            f"severity={self.severity}, "
            f"context={self.context})"
        )

    __hash__ = Exception.__hash__

    def with_context(self, **kwargs: Any) -> 'CastError':
        """Add additional context to the error."""
        self.context.update(kwargs)
        return self

    def get_traceback(self) -> str:
        """Get the stack trace from when this error was created."""
        return ''.join(self._traceback)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'category': self.category.name,
            'severity': self.severity.name,
            'context': self.context,
            'cause': str(self.cause) if self.cause else None,
        }


# =============================================================================
# Protocol Errors - raised by the message codec
# =============================================================================

class ProtocolError(CastError):
    """Packets or messages that do not follow the wire format."""

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.DEGRADED,
        cause: BaseException | None = None,
        **context: Any,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.PROTOCOL,
            severity=severity,
            context=context,
            cause=cause,
        )


class PacketTooShortError(ProtocolError):
    """Packet is shorter than the 4 byte source address header."""

    def __init__(self, packet: bytes, required: int):
        super().__init__(
            message=f"Packet too short: {len(packet)} bytes, need at least {required}",
            raw_preview=packet.hex(),
            raw_length=len(packet),
        )


class MalformedPayloadError(ProtocolError):
    """Payload bytes are not valid UTF-8."""

    def __init__(self, packet: bytes, cause: BaseException | None = None):
        preview = packet[:100].hex()
        super().__init__(
            message="Malformed payload: not valid UTF-8",
            cause=cause,
            raw_preview=preview,
            raw_length=len(packet),
        )


class InvalidAddressError(ProtocolError):
    """Source address is not a syntactically valid IPv4 address."""

    def __init__(self, address: Any, cause: BaseException | None = None):
        super().__init__(
            message=f"Invalid IPv4 address: {address!r}",
            cause=cause,
            address=address,
        )


# =============================================================================
# Network Errors - raised by the multicast endpoint
# =============================================================================

class NetworkError(CastError):
    """Socket level failures reported by the OS."""

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.TRANSIENT,
        cause: BaseException | None = None,
        **context: Any,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.NETWORK,
            severity=severity,
            context=context,
            cause=cause,
        )


class BindError(NetworkError):
    """The OS refused to bind the UDP socket."""

    def __init__(self, port: int, cause: BaseException | None = None):
        super().__init__(
            message=f"Failed to bind UDP socket on port {port}",
            severity=ErrorSeverity.FATAL,
            cause=cause,
            port=port,
        )


class JoinError(NetworkError):
    """The OS refused to configure the socket or join the group."""

    def __init__(
        self,
        group: str,
        interface: str,
        cause: BaseException | None = None,
    ):
        super().__init__(
            message=f"Failed to join multicast group {group} via {interface}",
            severity=ErrorSeverity.FATAL,
            cause=cause,
            group=group,
            interface=interface,
        )


class SendFailure(NetworkError):
    """One send to the group failed. Later sends are unaffected."""

    def __init__(
        self,
        target: tuple[str, int],
        packet_size: int,
        cause: BaseException | None = None,
    ):
        super().__init__(
            message=f"Send of {packet_size} bytes to {target[0]}:{target[1]} failed",
            cause=cause,
            target=target,
            packet_size=packet_size,
        )


class ReceiveFailure(NetworkError):
    """Receiving from the socket failed. Listening cannot continue."""

    def __init__(
        self,
        group: tuple[str, int],
        cause: BaseException | None = None,
    ):
        super().__init__(
            message=f"Receive from {group[0]}:{group[1]} failed",
            severity=ErrorSeverity.FATAL,
            cause=cause,
            group=group,
        )


# =============================================================================
# State Errors - listener lifecycle misuse
# =============================================================================

class StateError(CastError):
    """Operation is not valid in the current listener state."""

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.DEGRADED,
        **context: Any,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.STATE,
            severity=severity,
            context=context,
        )


class AlreadyListeningError(StateError):
    """start_listener() was called while the receive loop is running."""

    def __init__(self, group: tuple[str, int] | None):
        super().__init__(
            message="Network manager is already listening",
            group=group,
        )


class NotListeningError(StateError):
    """No multicast endpoint exists yet."""

    def __init__(self, operation: str):
        super().__init__(
            message=f"Cannot {operation}: no multicast endpoint has been created",
            operation=operation,
        )


# =============================================================================
# Interface Errors - local adapter lookup
# =============================================================================

class NoActiveInterfaceError(CastError):
    """No connected, non-loopback IPv4 interface was found."""

    def __init__(self, candidates: int = 0):
        super().__init__(
            message="No active interface found",
            category=ErrorCategory.INTERFACE,
            severity=ErrorSeverity.FATAL,
            context={'candidates': candidates},
        )
