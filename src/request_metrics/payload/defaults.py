"""Built-in payload filter registrations.

Other libraries' events (background jobs, file uploads, ...) are not covered;
register policies for them alongside these at startup.
"""

import os
import re
from collections.abc import Mapping
from email.message import Message
from typing import Any

from request_metrics.observability.constants import ROOT_PLACEHOLDER
from request_metrics.payload.registry import PayloadFilterRegistry

# Events whose payloads are small and safe to keep whole
PASSTHROUGH_EVENTS = (
    "sql.query",
    "cache.read_fragment",
    "cache.write_fragment",
    "cache.exist_fragment",
    "cache.expire_fragment",
    "cache.expire_page",
    "cache.write_page",
)

TEMPLATE_RENDER = "template.render"
PROCESS_ACTION = "controller.process_action"
MAIL_DELIVER = "mail.deliver"


def _read(source: Any, key: str) -> Any:
    """Read ``key`` from a mapping, an email message or a plain object."""
    if isinstance(source, (Mapping, Message)):
        return source.get(key)
    return getattr(source, key, None)


def scrub_project_root(
    payload: dict[str, Any],
    project_root: str,
    placeholder: str = ROOT_PLACEHOLDER,
) -> dict[str, Any]:
    """Replace the project root in string values with ``placeholder``.

    Only whole path components match: with root ``/srv/shop``, ``/srv/shop/a``
    is scrubbed and ``/srv/shopping`` is not. A filesystem root (``/``) scrubs nothing.
    """
    root = project_root.rstrip("/\\")
    if not root:
        return payload
    pattern = re.compile(re.escape(root) + r"(?=[/\\]|$)")
    return {
        key: pattern.sub(lambda _match: placeholder, value) if isinstance(value, str) else value
        for key, value in payload.items()
    }


def summarize_process_action(payload: dict[str, Any]) -> dict[str, Any]:
    """Reduce a controller payload to what identifies the action.

    The controller context object itself is discarded.
    """
    controller = payload.pop("controller", None)
    request = _read(controller, "request")
    return {
        "controller": _read(controller, "controller_name"),
        "action": payload.get("action"),
        "method": _read(request, "method"),
        "formats": _read(request, "formats"),
    }


def summarize_mail(payload: dict[str, Any]) -> dict[str, Any]:
    """Keep the envelope of a delivered message, never its body."""
    mail = payload.get("mail")
    sender = _read(mail, "from")
    if sender is None:
        # Django-style message objects
        sender = _read(mail, "from_email")
    return {
        "from": sender,
        "to": _read(mail, "to"),
        "subject": _read(mail, "subject"),
    }


def register_default_filters(
    registry: PayloadFilterRegistry,
    project_root: str | None = None,
    placeholder: str = ROOT_PLACEHOLDER,
) -> PayloadFilterRegistry:
    """Seed ``registry`` with the built-in policies.

    Args:
        registry: Registry to populate.
        project_root: Absolute path scrubbed from rendered template paths;
            defaults to the current working directory.
        placeholder: Token substituted for ``project_root``.

    Returns:
        The same registry.
    """
    root = project_root if project_root is not None else os.getcwd()

    registry.register(*PASSTHROUGH_EVENTS)
    registry.register(
        TEMPLATE_RENDER,
        transform=lambda payload: scrub_project_root(payload, root, placeholder),
    )
    registry.register(PROCESS_ACTION, transform=summarize_process_action)
    registry.register(MAIL_DELIVER, transform=summarize_mail)
    return registry
