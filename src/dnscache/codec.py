"""DNS wire helpers: build A/AAAA queries and extract addresses from replies.

Brief:
  Thin layer over dnslib. encode_query() produces the bytes handed to the UDP
  transport; parse_response() turns the raw reply into Record objects and
  classifies failures as ParseError or EmptyAnswer.

Inputs:
  - question names, QType values and raw reply bytes

Outputs:
  - wire-format query bytes and ParsedAnswer instances
"""

from __future__ import annotations

import ipaddress
import logging
from typing import NamedTuple, Tuple

from dnslib import CLASS, DNSHeader, DNSQuestion, DNSRecord
from dnslib.label import DNSLabelError

from .errors import EmptyAnswer, EncodingError, ParseError
from .records import QType, Record

logger = logging.getLogger(__name__)

MAX_REPLY_RECORDS = 100
_MAX_NAME_LENGTH = 253
_MAX_LABEL_LENGTH = 63
_TTL_SIGN_BIT = 1 << 31


class ParsedAnswer(NamedTuple):
    records: Tuple[Record, ...]
    truncated: bool


def _check_name(question: str) -> str:
    """Brief: Validate a question name against DNS length/label limits.

    Inputs:
      - question: Candidate DNS name.

    Outputs:
      - str: The name without surrounding whitespace or trailing dot.

    Raises:
      - EncodingError: empty name, empty label, or length limits exceeded.
    """

    name = str(question or "").strip()
    if name.endswith("."):
        name = name[:-1]
    if not name:
        raise EncodingError("empty question name")
    if len(name) > _MAX_NAME_LENGTH:
        raise EncodingError(f"name longer than {_MAX_NAME_LENGTH} characters")
    for label in name.split("."):
        if not label:
            raise EncodingError(f"empty label in {question!r}")
        if len(label) > _MAX_LABEL_LENGTH:
            raise EncodingError(
                f"label {label[:16]!r}... longer than {_MAX_LABEL_LENGTH} characters"
            )
    return name


def encode_query(question: str, qtype: QType) -> bytes:
    """
    Brief: Build a recursion-desired IN-class query for question/qtype.

    Inputs:
    - question: DNS name to resolve
    - qtype: QType.A or QType.AAAA

    Outputs:
    - bytes: wire-format query with transaction id 0

    Example:
        >>> len(encode_query("example.com", QType.A))
        29
    """
    name = _check_name(question)
    qtype = QType.coerce(qtype)
    try:
        header = DNSHeader()
        header.id = 0
        header.rd = 1
        query = DNSRecord(
            header,
            q=DNSQuestion(name, qtype.rrtype, CLASS.IN),
        )
        return query.pack()
    except (DNSLabelError, UnicodeError, ValueError) as exc:
        raise EncodingError(str(exc)) from exc


def _format_address(rdata: object) -> str:
    """Brief: Render A/AAAA rdata as dotted-quad or compressed colon-hex."""

    return str(ipaddress.ip_address(bytes(rdata.data)))  # type: ignore[attr-defined]


def _clamp_ttl(ttl: object) -> int:
    """Brief: Treat TTLs with the most significant bit set as 0 (RFC 2181 section 8)."""

    value = int(ttl)  # type: ignore[call-overload]
    if value < 0 or value >= _TTL_SIGN_BIT:
        return 0
    return value


def parse_response(
    data: bytes,
    question: str,
    qtype: QType,
    *,
    max_records: int = MAX_REPLY_RECORDS,
) -> ParsedAnswer:
    """
    Brief: Extract (address, ttl) pairs of the requested type from a reply.

    Inputs:
    - data: raw reply bytes from the upstream server
    - question: original question name (diagnostics only)
    - qtype: requested QType; answers of other types (e.g. CNAME) are skipped
    - max_records: cap on the number of extracted records

    Outputs:
    - ParsedAnswer(records, truncated): records in answer order, truncated is
      True when more than max_records matching answers were present

    Raises:
    - ParseError: reply cannot be decoded
    - EmptyAnswer: reply decoded but holds no matching record
    """
    qtype = QType.coerce(qtype)
    try:
        reply = DNSRecord.parse(data)
    except Exception as exc:
        logger.warning("dns parse reply failed for %s: %s", question, exc)
        raise ParseError(str(exc) or type(exc).__name__) from exc

    rrtype = qtype.rrtype
    records = []
    truncated = False
    for rr in reply.rr:
        if rr.rtype != rrtype:
            continue
        if len(records) >= max_records:
            truncated = True
            break
        try:
            records.append(Record(_format_address(rr.rdata), _clamp_ttl(rr.ttl)))
        except (AttributeError, TypeError, ValueError) as exc:
            logger.warning("dns parse reply failed for %s: %s", question, exc)
            raise ParseError(f"bad {qtype.name} rdata: {exc}") from exc

    if truncated:
        logger.warning(
            "Reply for %s type %s carries more than %d records; keeping the first %d",
            question,
            qtype.name,
            max_records,
            max_records,
        )

    if not records:
        raise EmptyAnswer()

    logger.debug(
        "got %d dns replies for %s type %s", len(records), question, qtype.name
    )
    return ParsedAnswer(tuple(records), truncated)
