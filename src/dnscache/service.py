"""Service host: owns the record cache and exposes the `query` API.

Brief:
  DnsService wires configuration, nameserver discovery, the RecordStore and
  the ResolutionCoordinator together. Construction fails with ConfigError when
  no nameserver is available so the process never starts half-configured.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from .config.config_parser import ServiceConfig
from .coordinator import ResolutionCoordinator
from .errors import ConfigError
from .models import LookupRequest, LookupResponse
from .nameservers import NameServerResolver
from .records import QType, RecordStore
from .scheduler import JobScheduler
from .transports.udp import UDPTransport

logger = logging.getLogger(__name__)


class DnsService:
    """Long-lived DNS cache service.

    Inputs:
      - config: ServiceConfig (defaults when omitted).
      - environ: Mapping used to read the nameserver override (os.environ by default).
      - transport: Optional transport replacement (tests use fakes).
      - scheduler: Optional JobScheduler.
      - clock: Optional time source shared by the store and coordinator.

    Outputs:
      - DnsService instance.

    Raises:
      - ConfigError: when no nameserver can be found.
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        environ: Optional[Mapping[str, str]] = None,
        transport: Optional[UDPTransport] = None,
        scheduler: Optional[JobScheduler] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.config = config or ServiceConfig()
        upstream = self.config.upstream
        try:
            self.nameservers = NameServerResolver.from_environ(
                environ,
                env_var=upstream.nameserver_env,
                resolv_conf=upstream.resolv_conf,
            )
        except ConfigError as exc:
            logger.error("dns service init failed: %s", exc)
            raise

        clock = clock or time.monotonic
        self.store = RecordStore(clock=clock)
        self.coordinator = ResolutionCoordinator(
            self.store,
            self.nameservers,
            transport,
            scheduler,
            timeout_ms=upstream.timeout_ms,
            port=upstream.port,
            max_records=self.config.cache.max_records,
            refresh_before_expiry_s=self.config.cache.refresh_before_expiry_s,
            clock=clock,
        )
        self._apis: Dict[str, Callable[[LookupRequest], Awaitable[LookupResponse]]] = {
            "query": self.query,
        }
        logger.info(
            "dns service ready: upstream %s:%d timeout %dms",
            self.nameservers.primary(),
            upstream.port,
            upstream.timeout_ms,
        )

    async def query(self, request: LookupRequest) -> LookupResponse:
        """Brief: `query` API: resolve request.question for request.qtype."""

        logger.debug(
            "service api: query %s type %s", request.question, request.qtype.name
        )
        return await self.coordinator.lookup(request.question, request.qtype)

    def refresh(self, question: str, qtype: QType = QType.A) -> bool:
        """Brief: Re-warm a cache entry without answering any caller."""

        return self.coordinator.refresh(question, qtype)

    async def call(self, api: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Brief: Dispatch a named API with a plain-dict request.

        Inputs:
          - api: API name (only "query" is registered).
          - payload: Request fields, validated as LookupRequest.

        Outputs:
          - dict: Response fields with None values omitted.

        Raises:
          - KeyError: unknown API name.
          - pydantic.ValidationError: malformed payload.
        """

        handler = self._apis.get(api)
        if handler is None:
            raise KeyError(f"unknown service api: {api}")
        response = await handler(LookupRequest(**dict(payload)))
        return response.model_dump(exclude_none=True)

    def release(self) -> None:
        logger.info("dns service release (%d cached name(s))", len(self.store))
