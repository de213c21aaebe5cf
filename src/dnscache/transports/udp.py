import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Set, Tuple

logger = logging.getLogger(__name__)


class UDPError(Exception):
    """
    Brief: DNS-over-UDP transport error.

    Inputs:
    - message: description

    Outputs:
    - Exception instance
    """

    pass


class TransportStatus(enum.Enum):
    OK = "ok"
    FAIL = "fail"


@dataclass(frozen=True)
class TransportResult:
    """
    Brief: Completion report handed to the send() callback.

    Inputs:
    - status: TransportStatus.OK or TransportStatus.FAIL
    - latency_ms: time between send and completion
    - response: reply bytes (empty on failure)
    - error: failure description (None on success)
    """

    status: TransportStatus
    latency_ms: float
    response: bytes = b""
    error: Optional[str] = None


class _QueryProtocol(asyncio.DatagramProtocol):
    """Send one datagram and resolve a future with the first reply."""

    def __init__(self, payload: bytes, waiter: "asyncio.Future[bytes]") -> None:
        self._payload = payload
        self._waiter = waiter

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        transport.sendto(self._payload)  # type: ignore[attr-defined]

    def datagram_received(self, data: bytes, addr: Tuple) -> None:
        if not self._waiter.done():
            self._waiter.set_result(data)

    def error_received(self, exc: Exception) -> None:
        if not self._waiter.done():
            self._waiter.set_exception(UDPError(f"UDP error: {exc}"))

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if not self._waiter.done():
            self._waiter.set_exception(UDPError(f"UDP connection lost: {exc}"))


class UDPTransport:
    """
    Brief: Asynchronous single-datagram DNS transport on an asyncio loop.

    Inputs:
    - source_ip: optional source address to bind

    Outputs:
    - UDPTransport instance

    Notes:
    - send() returns immediately; the callback runs exactly once on the loop,
      either with the reply or with a FAIL status. The socket is closed after
      completion, so a reply arriving after the timeout is dropped here.
    - In-flight exchange tasks are held until they finish so they cannot be
      garbage collected mid-query.
    """

    def __init__(self, source_ip: Optional[str] = None) -> None:
        self.source_ip = source_ip
        self._tasks: Set["asyncio.Task[None]"] = set()

    def send(
        self,
        host: str,
        port: int,
        payload: bytes,
        *,
        timeout_ms: int = 1000,
        callback: Callable[[TransportResult], None],
    ) -> "asyncio.Task[None]":
        """
        Brief: Send payload to host:port over UDP and report via callback.

        Inputs:
        - host: upstream resolver IP
        - port: upstream UDP port
        - payload: wire-format DNS query bytes
        - timeout_ms: overall timeout in milliseconds
        - callback: called with a TransportResult on completion

        Outputs:
        - asyncio.Task driving the exchange

        Raises:
        - UDPError: when no event loop is running
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise UDPError(f"UDP send requires a running event loop: {exc}")
        task = loop.create_task(
            self._exchange(host, int(port), payload, timeout_ms, callback)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _roundtrip(self, host: str, port: int, payload: bytes) -> bytes:
        loop = asyncio.get_running_loop()
        waiter: "asyncio.Future[bytes]" = loop.create_future()
        local_addr = (self.source_ip, 0) if self.source_ip else None
        transport, _ = await loop.create_datagram_endpoint(
            lambda: _QueryProtocol(payload, waiter),
            remote_addr=(host, port),
            local_addr=local_addr,
        )
        try:
            return await waiter
        finally:
            transport.close()

    async def _exchange(
        self,
        host: str,
        port: int,
        payload: bytes,
        timeout_ms: int,
        callback: Callable[[TransportResult], None],
    ) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()

        def elapsed_ms() -> float:
            return (loop.time() - started) * 1000.0

        try:
            data = await asyncio.wait_for(
                self._roundtrip(host, port, payload), timeout=timeout_ms / 1000.0
            )
            result = TransportResult(TransportStatus.OK, elapsed_ms(), data)
        except asyncio.TimeoutError:
            result = TransportResult(
                TransportStatus.FAIL, elapsed_ms(), error=f"timeout after {timeout_ms}ms"
            )
        except (OSError, UDPError) as exc:
            result = TransportResult(TransportStatus.FAIL, elapsed_ms(), error=str(exc))
        except asyncio.CancelledError:
            self._deliver(
                callback,
                TransportResult(TransportStatus.FAIL, elapsed_ms(), error="cancelled"),
                host,
                port,
            )
            raise
        except Exception as exc:
            logger.exception("UDP exchange with %s:%d failed", host, port)
            result = TransportResult(
                TransportStatus.FAIL,
                elapsed_ms(),
                error=f"{type(exc).__name__}: {exc}",
            )

        self._deliver(callback, result, host, port)

    @staticmethod
    def _deliver(
        callback: Callable[[TransportResult], None],
        result: TransportResult,
        host: str,
        port: int,
    ) -> None:
        try:
            callback(result)
        except Exception:
            logger.exception("UDP completion callback failed for %s:%d", host, port)
