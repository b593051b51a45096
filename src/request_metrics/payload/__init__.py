"""Payload filter policies and the registry that applies them."""

from request_metrics.payload.defaults import register_default_filters
from request_metrics.payload.registry import FilterConfigurationError, PayloadFilterRegistry
from request_metrics.payload.specs import All, Exclude, FilterSpec, Nothing, Transform, Whitelist

__all__ = [
    "All",
    "Exclude",
    "FilterConfigurationError",
    "FilterSpec",
    "Nothing",
    "PayloadFilterRegistry",
    "Transform",
    "Whitelist",
    "register_default_filters",
]
