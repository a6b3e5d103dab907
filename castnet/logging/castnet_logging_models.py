from .models import Entry, LogLevel


class MulticastTrace(Entry, kw_only=True):
    node_host: str
    node_port: int
    multicast_group: str
    level: LogLevel = LogLevel.TRACE

class MulticastDebug(Entry, kw_only=True):
    node_host: str
    node_port: int
    multicast_group: str
    level: LogLevel = LogLevel.DEBUG

class MulticastInfo(Entry, kw_only=True):
    node_host: str
    node_port: int
    multicast_group: str
    level: LogLevel = LogLevel.INFO

class MulticastError(Entry, kw_only=True):
    node_host: str
    node_port: int
    multicast_group: str
    error_type: str
    level: LogLevel = LogLevel.ERROR

class MulticastFatal(Entry, kw_only=True):
    node_host: str
    node_port: int
    multicast_group: str
    error_type: str
    level: LogLevel = LogLevel.FATAL

class MessageReceived(Entry, kw_only=True):
    node_host: str
    node_port: int
    multicast_group: str
    source_address: str
    packet_size: int
    level: LogLevel = LogLevel.DEBUG
