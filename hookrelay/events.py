"""Catalog of the event types webhooks can subscribe to."""
from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True)
class EventType:
    code: str
    label: str


class EventTypeRegistry:
    """Immutable set of known event types, built once and passed around explicitly."""

    def __init__(self, event_types: Iterable[EventType]) -> None:
        types = {}
        for event_type in event_types:
            if not event_type.code:
                raise ValueError("Event type code must not be empty")
            if event_type.code in types:
                raise ValueError(f"Duplicate event type '{event_type.code}'")
            types[event_type.code] = event_type
        self._types = MappingProxyType(types)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> EventTypeRegistry:
        return cls(EventType(code, label) for code, label in mapping.items())

    def __contains__(self, code: object) -> bool:
        return code in self._types

    def __iter__(self) -> Iterator[EventType]:
        return iter(self._types.values())

    def __len__(self) -> int:
        return len(self._types)

    @property
    def codes(self) -> frozenset[str]:
        return frozenset(self._types)

    def get(self, code: str) -> EventType | None:
        return self._types.get(code)

    def partition(self, codes: Iterable[str]) -> tuple[frozenset[str], frozenset[str]]:
        """Split ``codes`` into (known, unknown)."""
        requested = frozenset(codes)
        known = requested & self.codes
        return known, requested - known


def build_registry(settings=None) -> EventTypeRegistry:
    """Build the registry from the configured ``WEBHOOK_EVENT_TYPES``."""
    if settings is None:
        from hookrelay.config import get_settings

        settings = get_settings()
    return EventTypeRegistry.from_mapping(settings.WEBHOOK_EVENT_TYPES)
