from enum import Enum


class ListenerState(Enum):
    NOT_STARTED = "NOT_STARTED"
    LISTENING = "LISTENING"
    STOPPED = "STOPPED"
