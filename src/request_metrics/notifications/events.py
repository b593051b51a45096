"""Event models published on the notification bus."""

import traceback
from collections.abc import Mapping
from datetime import datetime
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FailureInfo(BaseModel):
    """Outcome of an instrumented body that raised."""

    model_config = ConfigDict(frozen=True)

    error_type: str = Field(..., description="Qualified exception class name")
    message: str = Field(..., description="str() of the exception")
    stack_trace: str | None = Field(default=None, description="Formatted traceback")

    @classmethod
    def from_exception(cls, exc: BaseException) -> "FailureInfo":
        exc_type = type(exc)
        return cls(
            error_type=f"{exc_type.__module__}.{exc_type.__qualname__}",
            message=str(exc),
            stack_trace="".join(traceback.format_exception(exc_type, exc, exc.__traceback__)),
        )


class Event(BaseModel):
    """One recorded instrumentation occurrence.

    Events are immutable once published: the payload is a read-only view of a
    private copy of what was handed to ``instrument``. Values inside it are
    not copied. Filtering happens when the event is handed to persistence.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., description="Event name, e.g. 'sql.query'")
    payload: Mapping[str, Any] = Field(default_factory=dict, description="Unfiltered payload")
    start_time: datetime = Field(..., description="UTC time before the body ran")
    end_time: datetime = Field(..., description="UTC time after the body finished")
    duration_ms: float = Field(..., description="Monotonic duration of the body")
    instrumenter_id: str = Field(..., description="Correlation token of the enclosing request")
    depth: int = Field(default=0, description="Number of enclosing instrumented calls")
    failure: FailureInfo | None = Field(default=None, description="Set when the body raised")

    @field_validator("payload", mode="after")
    @classmethod
    def _read_only(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @property
    def failed(self) -> bool:
        return self.failure is not None
