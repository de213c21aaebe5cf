"""Cache-first A/AAAA resolution with asynchronous upstream fallback.

Brief:
  ResolutionCoordinator answers lookups from the RecordStore when it holds
  unexpired records and otherwise dispatches one upstream query through the
  UDP transport. Successful replies answer the caller immediately; the cache
  merge is handed to the JobScheduler and runs as a separate loop callback.

Inputs:
  - RecordStore, NameServerResolver, transport and scheduler collaborators

Outputs:
  - LookupResponse values for callers; RecordStore merges as a side effect
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Set, Tuple

from .codec import MAX_REPLY_RECORDS, encode_query, parse_response
from .errors import DnsCacheError, EncodingError, NetworkError
from .models import LookupResponse
from .nameservers import NameServerResolver
from .records import QType, RecordSet, RecordStore, normalize_name
from .scheduler import JobScheduler
from .transports.udp import TransportResult, TransportStatus, UDPError, UDPTransport

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 1000
DNS_PORT = 53
DEFAULT_REFRESH_BEFORE_EXPIRY_S = 2


@dataclass
class PendingQuery:
    """In-flight upstream request and the caller waiting on it, if any.

    Notes:
      - waiter is None for refresh-only lookups.
      - completed flips once; any later completion for the same query is
        discarded so a caller is never answered twice.
    """

    question: str
    qtype: QType
    issued_at: float
    waiter: Optional["asyncio.Future[LookupResponse]"] = None
    completed: bool = field(default=False)

    @property
    def refresh_only(self) -> bool:
        return self.waiter is None


class ResolutionCoordinator:
    """Coordinates cache reads, upstream queries and deferred cache merges.

    Inputs:
      - store: RecordStore shared with the service.
      - nameservers: NameServerResolver; only primary() is queried.
      - transport: object with send(host, port, payload, timeout_ms=, callback=).
      - scheduler: JobScheduler used for cache merges and refresh jobs.
      - timeout_ms: Upstream query timeout in milliseconds.
      - port: Upstream UDP port.
      - max_records: Cap on records extracted per reply.
      - refresh_before_expiry_s: When a cache hit has this many seconds or
        fewer left on its shortest record, a refresh-only lookup is scheduled.
        0 disables refresh-ahead.
      - clock: Callable returning monotonic seconds; used for fetch timestamps.

    Outputs:
      - ResolutionCoordinator instance
    """

    def __init__(
        self,
        store: RecordStore,
        nameservers: NameServerResolver,
        transport: Optional[UDPTransport] = None,
        scheduler: Optional[JobScheduler] = None,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        port: int = DNS_PORT,
        max_records: int = MAX_REPLY_RECORDS,
        refresh_before_expiry_s: int = DEFAULT_REFRESH_BEFORE_EXPIRY_S,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.store = store
        self.nameservers = nameservers
        self.transport = transport or UDPTransport()
        self.scheduler = scheduler or JobScheduler()
        self.timeout_ms = int(timeout_ms)
        self.port = int(port)
        self.max_records = int(max_records)
        self.refresh_before_expiry_s = max(0, int(refresh_before_expiry_s))
        self._clock = clock or time.monotonic
        self._refreshing: Set[Tuple[str, QType]] = set()

    async def lookup(self, question: str, qtype: QType) -> LookupResponse:
        """Brief: Resolve question/qtype, from cache when possible.

        Inputs:
          - question: DNS name.
          - qtype: QType.A or QType.AAAA.

        Outputs:
          - LookupResponse: code 0 with every record, or code 1 with an error.
            Never raises for upstream, encoding or parsing failures.
        """

        qtype = QType.coerce(qtype)
        cached = self.store.read_unexpired(question, qtype)
        if cached:
            logger.debug(
                "Cache hit for %s type %s (%d record(s))",
                question,
                qtype.name,
                len(cached),
            )
            shortest = min(r.remaining_ttl for r in cached)
            self._maybe_refresh_ahead(question, qtype, shortest)
            return LookupResponse.success(cached)

        logger.debug(
            "Cache miss for %s type %s; querying upstream", question, qtype.name
        )
        waiter: "asyncio.Future[LookupResponse]" = (
            asyncio.get_running_loop().create_future()
        )
        pending = PendingQuery(question, qtype, self._clock(), waiter)
        try:
            self._dispatch(pending)
        except DnsCacheError as exc:
            return self._finish(pending, LookupResponse.failure(exc))
        except UDPError as exc:
            logger.error("query dns error for %s: %s", question, exc)
            return self._finish(pending, LookupResponse.failure("query dns error"))
        return await waiter

    def refresh(self, question: str, qtype: QType) -> bool:
        """Brief: Start a refresh-only lookup that updates the cache silently.

        Inputs:
          - question: DNS name.
          - qtype: QType.A or QType.AAAA.

        Outputs:
          - bool: True when the query was dispatched, False otherwise.
        """

        qtype = QType.coerce(qtype)
        pending = PendingQuery(question, qtype, self._clock())
        try:
            self._dispatch(pending)
        except (DnsCacheError, UDPError) as exc:
            logger.warning(
                "refresh for %s type %s failed: %s", question, qtype.name, exc
            )
            self._finish(pending, None)
            return False
        logger.debug("refresh for %s type %s dispatched", question, qtype.name)
        return True

    def _maybe_refresh_ahead(self, question: str, qtype: QType, remaining: int) -> None:
        if not self.refresh_before_expiry_s or remaining > self.refresh_before_expiry_s:
            return
        key = (normalize_name(question), qtype)
        if key in self._refreshing:
            return
        self._refreshing.add(key)
        logger.debug(
            "Scheduling refresh for %s type %s (%ds left)",
            question,
            qtype.name,
            remaining,
        )
        self.scheduler.create_job(self.refresh, question, qtype)

    def _dispatch(self, pending: PendingQuery) -> None:
        try:
            payload = encode_query(pending.question, pending.qtype)
        except EncodingError as exc:
            logger.error("create dns query failed for %r: %s", pending.question, exc)
            raise

        host = self.nameservers.primary()
        logger.debug(
            "Forwarding %s type %s via udp to %s:%d",
            pending.question,
            pending.qtype.name,
            host,
            self.port,
        )
        self.transport.send(
            host,
            self.port,
            payload,
            timeout_ms=self.timeout_ms,
            callback=functools.partial(self._on_complete, pending),
        )

    def _on_complete(self, pending: PendingQuery, result: TransportResult) -> None:
        """Brief: Transport continuation: answer the caller and schedule the merge."""

        if pending.completed:
            logger.debug(
                "Ignoring late completion for %s type %s (issued %.3fs ago)",
                pending.question,
                pending.qtype.name,
                self._clock() - pending.issued_at,
            )
            return

        try:
            self._handle_result(pending, result)
        except Exception as exc:
            logger.exception(
                "Handling dns reply for %s type %s failed",
                pending.question,
                pending.qtype.name,
            )
            self._finish(pending, LookupResponse.failure(f"Dns query failed: {exc}"))

    def _handle_result(self, pending: PendingQuery, result: TransportResult) -> None:
        logger.debug(
            "dns reply for %s type %s: status=%s latency=%.1fms len=%d refresh_only=%s",
            pending.question,
            pending.qtype.name,
            result.status.value,
            result.latency_ms,
            len(result.response),
            pending.refresh_only,
        )

        if result.status is not TransportStatus.OK:
            error = NetworkError(result.error or "unknown transport failure")
            logger.warning("%s (question: %s)", error, pending.question)
            self._finish(pending, LookupResponse.failure(error))
            return

        fetched_at = self._clock()
        try:
            answer = parse_response(
                result.response,
                pending.question,
                pending.qtype,
                max_records=self.max_records,
            )
        except DnsCacheError as exc:
            logger.debug(
                "lookup for %s type %s failed: %s",
                pending.question,
                pending.qtype.name,
                exc,
            )
            self._finish(pending, LookupResponse.failure(exc))
            return

        self._finish(pending, LookupResponse.success(answer.records))
        self.scheduler.create_job(
            self.store.merge,
            pending.question,
            pending.qtype,
            RecordSet(fetched_at, answer.records),
        )

    def _finish(
        self, pending: PendingQuery, response: Optional[LookupResponse]
    ) -> Optional[LookupResponse]:
        pending.completed = True
        waiter = pending.waiter
        if waiter is None:
            self._refreshing.discard((normalize_name(pending.question), pending.qtype))
        elif response is not None and not waiter.done():
            waiter.set_result(response)
        return response
