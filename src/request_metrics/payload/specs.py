"""Filter policies applied to event payloads before persistence.

``FilterSpec`` is a closed set of variants. ``Nothing`` is the explicit
policy for event names without a registration: disclosure is opt-in, so an
unknown event keeps no payload at all.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

Payload = Mapping[str, Any]
TransformFn = Callable[[dict[str, Any]], Mapping[str, Any]]


class FilterSpec(ABC):
    """Base class for payload filter policies.

    ``apply`` never mutates ``payload``; every variant returns a new dict.
    """

    @abstractmethod
    def apply(self, payload: Payload) -> dict[str, Any]:
        """Return the filtered copy of ``payload``."""


@dataclass(frozen=True)
class All(FilterSpec):
    """Keep the payload unchanged."""

    def apply(self, payload: Payload) -> dict[str, Any]:
        return dict(payload)


@dataclass(frozen=True)
class Nothing(FilterSpec):
    """Keep nothing. Used for every unregistered event name."""

    def apply(self, payload: Payload) -> dict[str, Any]:  # noqa: ARG002
        return {}


@dataclass(frozen=True, init=False)
class Whitelist(FilterSpec):
    """Keep only ``fields``; fields missing from the payload are skipped."""

    fields: frozenset[str]

    def __init__(self, fields: Iterable[str]) -> None:
        object.__setattr__(self, "fields", _as_field_set(fields))

    def apply(self, payload: Payload) -> dict[str, Any]:
        return {key: value for key, value in payload.items() if key in self.fields}


@dataclass(frozen=True, init=False)
class Exclude(FilterSpec):
    """Drop ``fields`` and keep everything else."""

    fields: frozenset[str]

    def __init__(self, fields: Iterable[str]) -> None:
        object.__setattr__(self, "fields", _as_field_set(fields))

    def apply(self, payload: Payload) -> dict[str, Any]:
        return {key: value for key, value in payload.items() if key not in self.fields}


@dataclass(frozen=True)
class Transform(FilterSpec):
    """Replace the payload with ``fn(payload)``.

    ``fn`` receives a shallow copy, so popping keys cannot reach the
    published event. Its result must be a mapping.
    """

    fn: TransformFn

    def apply(self, payload: Payload) -> dict[str, Any]:
        result = self.fn(dict(payload))
        if not isinstance(result, Mapping):
            raise TypeError(
                f"payload transform {getattr(self.fn, '__qualname__', self.fn)!r} "
                f"returned {type(result).__name__}, expected a mapping"
            )
        return dict(result)


def _as_field_set(fields: Iterable[str]) -> frozenset[str]:
    # A bare string is one field name, not an iterable of characters
    if isinstance(fields, str):
        return frozenset((fields,))
    return frozenset(fields)
