from __future__ import annotations
from pydantic import BaseModel, StrictBool, StrictStr, StrictInt, field_validator
from typing import Callable, Dict, Literal, Union

from .time_parser import TimeParser

PrimaryType = Union[str, int, float, bytes, bool]


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Env(BaseModel):
    CASTNET_MULTICAST_GROUP: StrictStr = "239.1.1.1"
    CASTNET_PORT: StrictInt = 6100
    CASTNET_LOCAL_INTERFACE: StrictStr | None = None
    CASTNET_MULTICAST_TTL: StrictInt = 1
    CASTNET_REUSE_ADDRESS: StrictBool = False
    CASTNET_RECEIVE_BUFFER_SIZE: StrictInt = 65535
    CASTNET_RECEIVE_POLL_INTERVAL: StrictStr = "0.5s"
    CASTNET_DISPATCH_QUEUE_SIZE: StrictInt = 0
    CASTNET_LOG_LEVEL: Literal[
        "trace", "debug", "info", "warn", "error", "critical", "fatal"
    ] = "info"
    CASTNET_LOGS_DIRECTORY: StrictStr | None = None

    @field_validator("CASTNET_RECEIVE_POLL_INTERVAL")
    @classmethod
    def validate_receive_poll_interval(cls, interval: str):
        if TimeParser().parse(interval) <= 0:
            raise ValueError(
                f"Receive poll interval must be a positive duration, got {interval!r}"
            )

        return interval

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "CASTNET_MULTICAST_GROUP": str,
            "CASTNET_PORT": int,
            "CASTNET_LOCAL_INTERFACE": str,
            "CASTNET_MULTICAST_TTL": int,
            "CASTNET_REUSE_ADDRESS": _to_bool,
            "CASTNET_RECEIVE_BUFFER_SIZE": int,
            "CASTNET_RECEIVE_POLL_INTERVAL": str,
            "CASTNET_DISPATCH_QUEUE_SIZE": int,
            "CASTNET_LOG_LEVEL": str,
            "CASTNET_LOGS_DIRECTORY": str,
        }
