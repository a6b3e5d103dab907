import asyncio
import collections


class LoggerProtocol(asyncio.Protocol):
    def __init__(self):
        self.transport: asyncio.WriteTransport | None = None
        self._paused = False
        self._drain_waiters: collections.deque[asyncio.Future] = collections.deque()
        self._connection_lost = False
        self._closed: asyncio.Future | None = None

    def connection_made(self, transport: asyncio.WriteTransport):
        self.transport = transport
        self._closed = asyncio.get_event_loop().create_future()

    def pause_writing(self):
        self._paused = True

    def resume_writing(self):
        self._paused = False

        for waiter in self._drain_waiters:
            if not waiter.done():
                waiter.set_result(None)

    def connection_lost(self, exc: Exception | None):
        self._connection_lost = True

        if self._closed and not self._closed.done():
            self._closed.set_result(None)

        if not self._paused:
            return

        for waiter in self._drain_waiters:
            if not waiter.done():
                if exc is None:
                    waiter.set_result(None)

                else:
                    waiter.set_exception(exc)

    async def _drain_helper(self):
        if self._connection_lost:
            raise ConnectionResetError("Connection lost")

        if not self._paused:
            return

        waiter = asyncio.get_event_loop().create_future()
        self._drain_waiters.append(waiter)

        try:
            await waiter

        finally:
            self._drain_waiters.remove(waiter)

    def _get_close_waiter(self, stream: asyncio.StreamWriter):
        return self._closed
