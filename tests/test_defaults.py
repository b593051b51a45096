"""Tests for the built-in payload filter registrations."""

from email.message import EmailMessage
from types import SimpleNamespace

import pytest

from request_metrics.payload import All, PayloadFilterRegistry, register_default_filters
from request_metrics.payload.defaults import (
    MAIL_DELIVER,
    PASSTHROUGH_EVENTS,
    PROCESS_ACTION,
    TEMPLATE_RENDER,
)

PROJECT_ROOT = "/srv/shop"


@pytest.fixture
def defaults() -> PayloadFilterRegistry:
    return register_default_filters(PayloadFilterRegistry(), project_root=PROJECT_ROOT)


class TestPassthrough:
    """Known small events are kept whole."""

    @pytest.mark.parametrize("name", PASSTHROUGH_EVENTS)
    def test_registered_as_all(self, defaults, name):
        assert defaults.get(name) == All()

    def test_sql_payload_kept(self, defaults):
        payload = {"name": "Order Load", "sql": "SELECT * FROM orders"}
        assert defaults.filter("sql.query", payload) == payload

    def test_unknown_events_still_dropped(self, defaults):
        assert defaults.filter("job.perform", {"args": [1]}) == {}


class TestTemplateRender:
    """Rendered template paths lose the absolute project root."""

    def test_project_root_scrubbed(self, defaults):
        payload = {
            "identifier": f"{PROJECT_ROOT}/templates/orders/index.html",
            "layout": f"{PROJECT_ROOT}/templates/base.html",
            "count": 3,
        }
        assert defaults.filter(TEMPLATE_RENDER, payload) == {
            "identifier": "PROJECT_ROOT/templates/orders/index.html",
            "layout": "PROJECT_ROOT/templates/base.html",
            "count": 3,
        }
        assert payload["identifier"].startswith(PROJECT_ROOT)

    def test_custom_placeholder(self):
        registry = register_default_filters(
            PayloadFilterRegistry(), project_root=PROJECT_ROOT, placeholder="<root>"
        )
        result = registry.filter(TEMPLATE_RENDER, {"identifier": f"{PROJECT_ROOT}/a.html"})
        assert result == {"identifier": "<root>/a.html"}

    def test_filesystem_root_scrubs_nothing(self):
        registry = register_default_filters(PayloadFilterRegistry(), project_root="/")
        payload = {"identifier": "/srv/app/a.html"}
        assert registry.filter(TEMPLATE_RENDER, payload) == payload

    def test_trailing_separator_on_root(self):
        registry = register_default_filters(PayloadFilterRegistry(), project_root=f"{PROJECT_ROOT}/")
        result = registry.filter(TEMPLATE_RENDER, {"identifier": f"{PROJECT_ROOT}/a.html"})
        assert result == {"identifier": "PROJECT_ROOT/a.html"}

    def test_sibling_directory_not_scrubbed(self, defaults):
        payload = {"identifier": "/srv/shopping/a.html", "root": PROJECT_ROOT}
        assert defaults.filter(TEMPLATE_RENDER, payload) == {
            "identifier": "/srv/shopping/a.html",
            "root": "PROJECT_ROOT",
        }

    def test_defaults_to_working_directory(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        registry = register_default_filters(PayloadFilterRegistry())
        result = registry.filter(TEMPLATE_RENDER, {"identifier": f"{tmp_path}/a.html"})
        assert result == {"identifier": "PROJECT_ROOT/a.html"}


class TestProcessAction:
    """Controller payloads are reduced to the action's identity."""

    def test_reduced_to_controller_action_method_formats(self, defaults):
        controller = SimpleNamespace(
            controller_name="orders",
            request=SimpleNamespace(method="POST", formats=["json"]),
        )
        payload = {"controller": controller, "action": "create", "params": {"id": 1}}

        assert defaults.filter(PROCESS_ACTION, payload) == {
            "controller": "orders",
            "action": "create",
            "method": "POST",
            "formats": ["json"],
        }
        assert payload["controller"] is controller


class TestMailDeliver:
    """Mail payloads keep only the envelope."""

    def test_mapping_message(self, defaults):
        payload = {"mail": {"from": "a@x", "to": "b@x", "subject": "hi", "body": "secret"}}
        assert defaults.filter(MAIL_DELIVER, payload) == {"from": "a@x", "to": "b@x", "subject": "hi"}

    def test_email_message(self, defaults):
        mail = EmailMessage()
        mail["From"] = "a@x"
        mail["To"] = "b@x"
        mail["Subject"] = "hi"
        mail.set_content("secret")

        assert defaults.filter(MAIL_DELIVER, {"mail": mail}) == {
            "from": "a@x",
            "to": "b@x",
            "subject": "hi",
        }

    def test_attribute_message(self, defaults):
        mail = SimpleNamespace(from_email="a@x", to=["b@x"], subject="hi", body="secret")
        assert defaults.filter(MAIL_DELIVER, {"mail": mail}) == {
            "from": "a@x",
            "to": ["b@x"],
            "subject": "hi",
        }
