from __future__ import annotations

from typing import Any, List, Optional, Sequence

from pydantic import BaseModel, Field, field_validator

from .records import CachedRecord, QType, Record


class LookupRequest(BaseModel):
    """Brief: Request payload of the `query` API.

    Inputs:
      - question: DNS name to resolve.
      - qtype: QType (1=A, 2=AAAA); names "A"/"AAAA" are accepted too.

    Outputs:
      - LookupRequest instance.
    """

    question: str = Field(min_length=1)
    qtype: QType = QType.A

    @field_validator("qtype", mode="before")
    @classmethod
    def _coerce_qtype(cls, value: Any) -> QType:
        return QType.coerce(value)


class RecordModel(BaseModel):
    ip: str
    ttl: int = Field(ge=-(2**31), le=2**31 - 1)


class LookupResponse(BaseModel):
    """Brief: Response payload of the `query` API.

    Notes:
      - code 0 always carries at least one record; code 1 always carries an
        error message and no records.
    """

    code: int = 0
    error: Optional[str] = None
    records: List[RecordModel] = Field(default_factory=list)

    @classmethod
    def success(cls, records: Sequence[object]) -> "LookupResponse":
        """Brief: Build a code=0 response from CachedRecord or Record items."""

        items = []
        for rec in records:
            if isinstance(rec, CachedRecord):
                items.append(RecordModel(ip=rec.address, ttl=rec.remaining_ttl))
            elif isinstance(rec, Record):
                items.append(RecordModel(ip=rec.address, ttl=rec.ttl))
            else:
                raise TypeError(f"unsupported record type: {type(rec).__name__}")
        return cls(code=0, records=items)

    @classmethod
    def failure(cls, error: object) -> "LookupResponse":
        return cls(code=1, error=str(error))

    @property
    def ok(self) -> bool:
        return self.code == 0
