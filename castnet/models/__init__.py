from .message import Message as Message
from .message_protocol import MessageProtocol as MessageProtocol
