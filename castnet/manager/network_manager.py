from __future__ import annotations

import asyncio
import inspect
import os
import uuid
from typing import Any

from castnet.codec import decode, encode
from castnet.env import Env, TimeParser
from castnet.errors import (
    AlreadyListeningError,
    CastError,
    NetworkError,
    NotListeningError,
    ProtocolError,
)
from castnet.interfaces import get_fastest_interface_address
from castnet.logging import Logger, LoggingConfig
from castnet.logging.castnet_logging_models import (
    MessageReceived,
    MulticastDebug,
    MulticastError,
    MulticastFatal,
    MulticastInfo,
    MulticastTrace,
)
from castnet.models import Message, MessageProtocol
from castnet.multicast import MulticastEndpoint

from .listener_state import ListenerState
from .subscriber_list import Handler, SubscriberList


class NetworkManager:
    """
    Sends messages to a multicast group and notifies subscribers when
    messages are received from it.

    start_listener() creates the multicast endpoint and launches two
    background tasks: the receive loop, which decodes datagrams and
    queues them, and the dispatcher, which hands each queued message to
    every subscriber in registration order. Subscribers never block the
    receive loop, and a failing subscriber never prevents the others
    from running.

    Usage:
        manager = NetworkManager()

        @manager.subscribe
        def on_message(message: Message):
            print(message.to_display_string())

        async with manager:
            await manager.start_listener("192.168.1.10", "239.1.1.1")
            await manager.send(Message("192.168.1.10", "hello"))
    """

    def __init__(
        self,
        env: Env | None = None,
        logger: Logger | None = None,
        name: str | None = None,
    ) -> None:
        if env is None:
            env = Env()

        self.env = env
        self.node_id = uuid.uuid4().int >> 64

        self._logger = logger if logger else Logger()
        self._logger_name = name if name else f"castnet_{self.node_id}"
        self._logging_config = LoggingConfig()

        self._state = ListenerState.NOT_STARTED
        self._endpoint = MulticastEndpoint(logger=self._logger)
        self._local_address: str | None = None
        self._group_address: tuple[str, int] | None = None

        self._stop_signal: asyncio.Event | None = None
        self._receive_task: asyncio.Task | None = None
        self._dispatch_task: asyncio.Task | None = None
        self._dispatch_queue: asyncio.Queue[Message | None] | None = None
        self._start_lock = asyncio.Lock()

        self._subscribers: SubscriberList[Message] = SubscriberList()
        self._poll_interval = TimeParser().parse(env.CASTNET_RECEIVE_POLL_INTERVAL)

        self._messages_received: int = 0
        self._messages_dispatched: int = 0
        self._decode_failures: int = 0
        self._handler_failures: int = 0
        self._receive_failures: int = 0

    @property
    def state(self) -> ListenerState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state == ListenerState.LISTENING

    @property
    def local_address(self) -> str | None:
        return self._local_address

    @property
    def group_address(self) -> tuple[str, int] | None:
        return self._group_address

    @property
    def endpoint(self) -> MulticastEndpoint:
        return self._endpoint

    def subscribe(self, handler: Handler[Message]):
        """
        Register a handler for received messages. Handlers may be plain
        functions or coroutine functions. Returns the handler so this can
        be used as a decorator.
        """
        self._subscribers.add(handler)
        return handler

    def unsubscribe(self, handler: Handler[Message]) -> bool:
        return self._subscribers.remove(handler)

    async def start_listener(
        self,
        local_ip: str | None = None,
        group_ip: str | None = None,
        port: int | None = None,
    ) -> None:
        """
        Join the multicast group and start listening in the background.

        Returns as soon as the endpoint exists and the receive loop has
        been scheduled. Raises AlreadyListeningError while listening, and
        BindError or JoinError if the endpoint cannot be created.
        """
        async with self._start_lock:
            if self._state == ListenerState.LISTENING:
                raise AlreadyListeningError(self._group_address)

            await self._join_tasks()

            if group_ip is None:
                group_ip = self.env.CASTNET_MULTICAST_GROUP

            if port is None:
                port = self.env.CASTNET_PORT

            if local_ip is None:
                local_ip = self.env.CASTNET_LOCAL_INTERFACE

            if local_ip is None:
                local_ip = get_fastest_interface_address()

            local_ip = str(local_ip)
            group_ip = str(group_ip)

            self._configure_logger(local_ip, group_ip, port)

            await self._logger.log(
                MulticastInfo(
                    message="Creating multicast endpoint",
                    **self._entry_context(local_ip, group_ip, port),
                ),
                name=self._logger_name,
            )

            try:
                endpoint = MulticastEndpoint.create(
                    local_ip,
                    group_ip,
                    port,
                    ttl=self.env.CASTNET_MULTICAST_TTL,
                    reuse_address=self.env.CASTNET_REUSE_ADDRESS,
                    receive_buffer_size=self.env.CASTNET_RECEIVE_BUFFER_SIZE,
                    logger=self._logger,
                    logger_name=self._logger_name,
                )

            except NetworkError as setup_error:
                await self._log_error(
                    setup_error,
                    fatal=True,
                    context=self._entry_context(local_ip, group_ip, port),
                )
                raise

            self._endpoint = endpoint
            self._local_address = local_ip
            self._group_address = endpoint.group_address

            self._stop_signal = asyncio.Event()
            self._dispatch_queue = asyncio.Queue(
                maxsize=self.env.CASTNET_DISPATCH_QUEUE_SIZE,
            )
            self._state = ListenerState.LISTENING

            self._receive_task = asyncio.create_task(self._receive_loop())
            self._dispatch_task = asyncio.create_task(
                self._dispatch_loop(self._dispatch_queue),
            )

            group_host, group_port = self._group_address
            await self._logger.log(
                MulticastInfo(
                    message=f"Listening on {group_host}:{group_port}",
                    **self._entry_context(),
                ),
                name=self._logger_name,
            )

    async def send(self, message: MessageProtocol) -> bool:
        """
        Encode a message and send it to the group.

        Raises NotListeningError before an endpoint exists and
        InvalidAddressError for a malformed source address. Socket
        errors are logged and reported by returning False.
        """
        if self._endpoint.is_initialized is False:
            raise NotListeningError("send")

        return await self._endpoint.send(encode(message))

    async def stop(self) -> None:
        """
        Stop listening. The receive loop notices the stop signal within
        one poll interval, queued messages are still dispatched, then the
        endpoint leaves the group and closes its socket. Idempotent.
        """
        if self._stop_signal is not None:
            self._stop_signal.set()

        was_listening = self._receive_task is not None

        await self._join_tasks()

        if was_listening:
            await self._logger.log(
                MulticastInfo(
                    message="Stopped listening",
                    **self._entry_context(),
                ),
                name=self._logger_name,
            )

    async def close(self) -> None:
        await self.stop()
        await self._logger.close()

    def get_stats(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "subscribers": len(self._subscribers),
            "messages_received": self._messages_received,
            "messages_dispatched": self._messages_dispatched,
            "decode_failures": self._decode_failures,
            "handler_failures": self._handler_failures,
            "receive_failures": self._receive_failures,
            "pending_dispatch": (
                self._dispatch_queue.qsize() if self._dispatch_queue else 0
            ),
            **{
                f"endpoint_{key}": value
                for key, value in self._endpoint.get_stats().items()
            },
        }

    async def _receive_loop(self) -> None:
        try:
            while not self._stop_signal.is_set():
                try:
                    packet = await asyncio.wait_for(
                        self._endpoint.receive(),
                        timeout=self._poll_interval,
                    )

                except asyncio.TimeoutError:
                    continue

                except CastError as receive_error:
                    self._receive_failures += 1
                    await self._log_error(receive_error, fatal=True)
                    break

                try:
                    message = decode(packet)

                except ProtocolError as decode_error:
                    self._decode_failures += 1
                    await self._log_error(decode_error)
                    continue

                self._messages_received += 1

                await self._logger.log(
                    MessageReceived(
                        message=f"Received {len(packet)} byte message from {message.source_address}",
                        source_address=message.source_address,
                        packet_size=len(packet),
                        **self._entry_context(),
                    ),
                    name=self._logger_name,
                )

                await self._dispatch_queue.put(message)

        finally:
            self._endpoint.close()
            self._state = ListenerState.STOPPED
            await self._dispatch_queue.put(None)

    async def _dispatch_loop(self, queue: asyncio.Queue[Message | None]) -> None:
        while True:
            message = await queue.get()
            if message is None:
                break

            for handler in self._subscribers.snapshot():
                try:
                    result = handler(message)
                    if inspect.isawaitable(result):
                        await result

                except Exception as handler_error:
                    self._handler_failures += 1
                    await self._logger.log(
                        MulticastError(
                            message=f"Subscriber {getattr(handler, '__name__', repr(handler))} failed: {handler_error}",
                            error_type=type(handler_error).__name__,
                            **self._entry_context(),
                        ),
                        name=self._logger_name,
                    )

            self._messages_dispatched += 1

    async def _join_tasks(self) -> None:
        # A subscriber may stop the manager from inside the dispatch task.
        # That task ends on its own once it reads the queue sentinel.
        current = asyncio.current_task()

        if self._receive_task is not None and self._receive_task is not current:
            await self._receive_task
            self._receive_task = None

        if self._dispatch_task is not None and self._dispatch_task is not current:
            await self._dispatch_task
            self._dispatch_task = None

    def _configure_logger(self, local_ip: str, group_ip: str, port: int):
        self._logging_config.update(
            log_level=self.env.CASTNET_LOG_LEVEL,
        )

        path: str | None = None
        if self.env.CASTNET_LOGS_DIRECTORY:
            path = os.path.join(
                self.env.CASTNET_LOGS_DIRECTORY,
                f"{self._logger_name}.json",
            )

        default_config = self._entry_context(local_ip, group_ip, port)

        self._logger.configure(
            name=self._logger_name,
            path=path,
            template="{timestamp} - {level} - {thread_id} - {filename}:{function_name}.{line_number} - {message}",
            models={
                "trace": (MulticastTrace, default_config),
                "debug": (MulticastDebug, default_config),
                "info": (MulticastInfo, default_config),
            },
        )

    def _entry_context(
        self,
        local_ip: str | None = None,
        group_ip: str | None = None,
        port: int | None = None,
    ) -> dict[str, str | int]:
        if self._group_address:
            group_ip = group_ip if group_ip else self._group_address[0]
            port = port if port is not None else self._group_address[1]

        return {
            "node_host": local_ip or self._local_address or "",
            "node_port": port if port is not None else 0,
            "multicast_group": group_ip or "",
        }

    async def _log_error(
        self,
        error: CastError,
        fatal: bool = False,
        context: dict[str, str | int] | None = None,
    ) -> None:
        model = MulticastFatal if fatal else MulticastError

        if context is None:
            context = self._entry_context()

        await self._logger.log(
            model(
                message=str(error),
                error_type=type(error).__name__,
                **context,
            ),
            name=self._logger_name,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
