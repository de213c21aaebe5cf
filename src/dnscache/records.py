""" TTL-aware record store with one mapping per record type. """

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from dnslib import QTYPE

logger = logging.getLogger(__name__)


class QType(enum.IntEnum):
    """Brief: Lookup record type as exposed to callers (A=1, AAAA=2).

    Notes:
      - These values are the lookup API's own enum, not DNS RR type codes;
        use `rrtype` for the wire value.
    """

    A = 1
    AAAA = 2

    @property
    def rrtype(self) -> int:
        """Brief: Return the DNS RR type code (1 for A, 28 for AAAA)."""

        return QTYPE.A if self is QType.A else QTYPE.AAAA

    @classmethod
    def coerce(cls, value: object) -> "QType":
        """Brief: Accept a QType, its int value, or its name ("a", "AAAA").

        Inputs:
          - value: QType, int or str.

        Outputs:
          - QType member.

        Raises:
          - ValueError: for unknown values.
        """

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            name = value.strip().upper()
            if name in cls.__members__:
                return cls[name]
            if name.isdigit():
                return cls(int(name))
            raise ValueError(f"unsupported qtype: {value!r}")
        return cls(int(value))  # type: ignore[arg-type]


@dataclass(frozen=True)
class Record:
    """One resolved address with its original upstream TTL."""

    address: str
    ttl: int


@dataclass(frozen=True)
class RecordSet:
    """All records from one upstream response, sharing one fetch timestamp."""

    fetched_at: float
    records: Tuple[Record, ...]


class CachedRecord(NamedTuple):
    address: str
    remaining_ttl: int


def normalize_name(question: str) -> str:
    """Brief: Build the cache key for a question name.

    Inputs:
      - question: DNS name, any case, optional trailing dot.

    Outputs:
      - str: lower-cased name without trailing dot.
    """

    return str(question).strip().rstrip(".").lower()


class RecordStore:
    """
    In-memory DNS record cache with lazy, read-time TTL expiry.

    Inputs:
        clock: Optional callable returning monotonic seconds
            (defaults to time.monotonic).
    Outputs:
        RecordStore instance

    Notes:
        The A and AAAA mappings are independent. A RecordSet is only ever
        replaced wholesale by merge(); nothing is evicted, expired records are
        simply filtered out by read_unexpired(). The store takes no lock: all
        reads and merges run on the owning event loop.

    Example use:
        >>> store = RecordStore(clock=lambda: 100.0)
        >>> store.merge("example.com", QType.A,
        ...             RecordSet(100.0, (Record("93.184.216.34", 60),)))
        True
        >>> store.read_unexpired("example.com", QType.A)
        [CachedRecord(address='93.184.216.34', remaining_ttl=60)]
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock = clock or time.monotonic
        self._records: Dict[QType, Dict[str, RecordSet]] = {
            QType.A: {},
            QType.AAAA: {},
        }

    def get(self, question: str, qtype: QType) -> Optional[RecordSet]:
        """Brief: Return the current RecordSet for (question, qtype), if any."""

        return self._records[QType.coerce(qtype)].get(normalize_name(question))

    def read_unexpired(self, question: str, qtype: QType) -> List[CachedRecord]:
        """
        Returns the unexpired records for (question, qtype) in response order.

        Inputs:
            question: Question name.
            qtype: QType.A or QType.AAAA.

        Outputs:
            List of CachedRecord(address, remaining_ttl). An empty list means
            the key is absent, every record expired, or the set was empty;
            the caller must query upstream in all three cases.
        """
        record_set = self.get(question, qtype)
        if record_set is None:
            return []

        elapsed = self._clock() - record_set.fetched_at
        return [
            CachedRecord(rec.address, int(rec.ttl - elapsed))
            for rec in record_set.records
            if elapsed < rec.ttl
        ]

    def merge(self, question: str, qtype: QType, candidate: RecordSet) -> bool:
        """
        Installs candidate unless the current set was fetched at the same time
        or later.

        Inputs:
            question: Question name.
            qtype: QType.A or QType.AAAA.
            candidate: RecordSet built from one upstream response.

        Outputs:
            bool: True when candidate was installed, False when discarded.

        Notes:
            Upstream replies can complete out of order, and the merge itself
            runs as a deferred job. Comparing fetched_at keeps an older
            result from overwriting a newer one regardless of arrival order.
        """
        qtype = QType.coerce(qtype)
        mapping = self._records[qtype]
        key = normalize_name(question)
        current = mapping.get(key)
        if current is not None and candidate.fetched_at <= current.fetched_at:
            logger.debug(
                "Discarding stale record set for %s type %s: fetched_at=%.3f <= %.3f",
                key,
                qtype.name,
                candidate.fetched_at,
                current.fetched_at,
            )
            return False

        mapping[key] = candidate
        logger.debug(
            "Cached %d record(s) for %s type %s",
            len(candidate.records),
            key,
            qtype.name,
        )
        return True

    def __len__(self) -> int:
        return sum(len(m) for m in self._records.values())
