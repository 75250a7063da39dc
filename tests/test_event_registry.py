"""Unit tests for the event-type registry."""
from __future__ import annotations

import pytest

from hookrelay.config import Settings
from hookrelay.events import EventType, EventTypeRegistry, build_registry


class TestEventTypeRegistry:
    @pytest.fixture
    def registry(self) -> EventTypeRegistry:
        return EventTypeRegistry(
            [
                EventType("form.submitted", "Form submitted"),
                EventType("page.hit", "Page hit"),
            ]
        )

    def test_membership(self, registry):
        assert "form.submitted" in registry
        assert "unknown.event" not in registry
        assert len(registry) == 2

    def test_codes(self, registry):
        assert registry.codes == frozenset({"form.submitted", "page.hit"})

    def test_get_returns_label(self, registry):
        assert registry.get("page.hit").label == "Page hit"
        assert registry.get("missing") is None

    def test_partition(self, registry):
        known, unknown = registry.partition(["page.hit", "unknown.event"])
        assert known == {"page.hit"}
        assert unknown == {"unknown.event"}

    def test_iteration_preserves_definition_order(self, registry):
        assert [t.code for t in registry] == ["form.submitted", "page.hit"]

    def test_duplicate_codes_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            EventTypeRegistry([EventType("a", "A"), EventType("a", "A again")])

    def test_empty_code_rejected(self):
        with pytest.raises(ValueError):
            EventTypeRegistry([EventType("", "Nothing")])

    def test_event_types_are_frozen(self, registry):
        event_type = registry.get("page.hit")
        with pytest.raises(AttributeError):
            event_type.label = "Changed"


def test_build_registry_from_settings():
    settings = Settings(WEBHOOK_EVENT_TYPES={"order.paid": "Order paid"})
    registry = build_registry(settings)
    assert registry.codes == frozenset({"order.paid"})


def test_default_settings_include_form_submissions():
    assert "form.submitted" in build_registry(Settings())
