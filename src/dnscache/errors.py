"""Error taxonomy shared by the record cache and the resolution coordinator.

Brief:
  ConfigError is fatal and only raised at startup. Every other class is caught
  at the coordinator boundary and turned into a `{code: 1, error: ...}`
  LookupResponse using the exception's string form.
"""

from __future__ import annotations


class DnsCacheError(Exception):
    """Brief: Base class for dnscache errors."""


class ConfigError(DnsCacheError):
    """Brief: No usable nameserver or invalid startup configuration."""


class EncodingError(DnsCacheError):
    """Brief: The question name cannot be encoded into a DNS query.

    Inputs:
      - detail: description of the offending name

    Outputs:
      - Exception instance
    """

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Dns query failed, invalid question: {detail}")


class NetworkError(DnsCacheError):
    """Brief: Transport reported a non-OK status (including timeout)."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Dns query failed due to network issue: {detail}")


class ParseError(DnsCacheError):
    """Brief: Upstream reply could not be decoded.

    Inputs:
      - reason: underlying decode failure

    Outputs:
      - Exception instance with `reason` attribute
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(
            f"Dns query failed, check whether domain is correct: {reason}"
        )


class EmptyAnswer(DnsCacheError):
    """Brief: Well-formed reply without any record of the requested type."""

    def __init__(self) -> None:
        super().__init__("Dns query failed, no ip returned")
