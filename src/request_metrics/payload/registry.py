"""Registry mapping event names to payload filter policies.

Most payloads carry far more than is worth storing (backtraces, controller
objects, response bodies), so nothing is kept unless a policy is registered:

    registry = PayloadFilterRegistry()
    registry.register("sql.query")                         # keep everything
    registry.register("sql.query", only=["sql"])           # keep some fields
    registry.register("sql.query", exclude=["binds"])      # drop some fields

    @registry.transformer("controller.process_action")
    def _process_action(payload):
        return {"method": payload["request"].method}

    registry.unregister("sql.query")

Registration is meant for startup; ``filter`` is read-only and safe to call
from concurrent requests while a registration is being swapped in.
"""

import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from request_metrics.observability.constants import LogEvents
from request_metrics.observability.logger import get_logger
from request_metrics.payload.specs import (
    All,
    Exclude,
    FilterSpec,
    Nothing,
    Transform,
    TransformFn,
    Whitelist,
)

logger = get_logger(__name__)

NOTHING = Nothing()


class FilterConfigurationError(ValueError):
    """Raised when a registration is ambiguous or malformed."""


class PayloadFilterRegistry:
    """Single live mapping from event name to ``FilterSpec``."""

    def __init__(self) -> None:
        # Replaced wholesale on every write; readers grab the current dict without locking
        self._specs: dict[str, FilterSpec] = {}
        self._lock = threading.Lock()

    def register(
        self,
        *names: str,
        spec: FilterSpec | None = None,
        only: Iterable[str] | None = None,
        exclude: Iterable[str] | None = None,
        transform: TransformFn | None = None,
    ) -> FilterSpec:
        """Store one policy for each of ``names``, replacing prior entries.

        Args:
            names: Event names sharing the policy.
            spec: An explicit ``FilterSpec``.
            only: Fields to keep (becomes ``Whitelist``).
            exclude: Fields to drop (becomes ``Exclude``).
            transform: Payload function (becomes ``Transform``).

        With none of the options the policy is ``All``.

        Returns:
            The registered spec.

        Raises:
            FilterConfigurationError: No names, or more than one option given.
        """
        if not names:
            raise FilterConfigurationError("register() needs at least one event name")
        resolved = _resolve_spec(spec=spec, only=only, exclude=exclude, transform=transform)

        with self._lock:
            specs = dict(self._specs)
            for name in names:
                specs[str(name)] = resolved
            self._specs = specs

        logger.debug(
            LogEvents.PAYLOAD_FILTER_REGISTERED,
            names=list(names),
            policy=type(resolved).__name__,
        )
        return resolved

    def transformer(self, *names: str) -> Callable[[TransformFn], TransformFn]:
        """Decorator registering the wrapped function as a ``Transform`` for ``names``."""

        def decorator(fn: TransformFn) -> TransformFn:
            self.register(*names, transform=fn)
            return fn

        return decorator

    def unregister(self, *names: str) -> None:
        """Remove the entries for ``names``; absent names are ignored."""
        with self._lock:
            specs = dict(self._specs)
            for name in names:
                specs.pop(str(name), None)
            self._specs = specs

        logger.debug(LogEvents.PAYLOAD_FILTER_UNREGISTERED, names=list(names))

    def get(self, name: str) -> FilterSpec:
        """The policy for ``name``; ``Nothing`` when unregistered."""
        return self._specs.get(name, NOTHING)

    def names(self) -> list[str]:
        return sorted(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def filter(self, name: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Apply the policy registered for ``name`` to ``payload``.

        The input payload is never mutated. A failing transform is logged and
        yields an empty payload for that event only.
        """
        spec = self.get(name)
        try:
            return spec.apply(payload)
        except Exception as exc:
            logger.exception(
                LogEvents.PAYLOAD_FILTER_FAILED,
                event_name=name,
                policy=type(spec).__name__,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return {}


def _resolve_spec(
    *,
    spec: FilterSpec | None,
    only: Iterable[str] | None,
    exclude: Iterable[str] | None,
    transform: TransformFn | None,
) -> FilterSpec:
    given = [
        option
        for option, value in (
            ("spec", spec),
            ("only", only),
            ("exclude", exclude),
            ("transform", transform),
        )
        if value is not None
    ]
    if len(given) > 1:
        raise FilterConfigurationError(
            f"register() accepts one of spec/only/exclude/transform, got {', '.join(given)}"
        )

    if spec is not None:
        if not isinstance(spec, FilterSpec):
            raise FilterConfigurationError(f"spec must be a FilterSpec, got {type(spec).__name__}")
        return spec
    if only is not None:
        return Whitelist(only)
    if exclude is not None:
        return Exclude(exclude)
    if transform is not None:
        if not callable(transform):
            raise FilterConfigurationError("transform must be callable")
        return Transform(transform)
    return All()
