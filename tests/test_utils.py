"""Tests for logging setup, metrics helpers and error types."""
from __future__ import annotations

import uuid

import pytest
import structlog

from hookrelay.utils.exceptions import (
    DispatchError,
    EnqueueError,
    HookRelayError,
    PersistenceError,
    RegistryUnavailableError,
    WebhookNotFoundError,
)
from hookrelay.utils.logging import get_logger, setup_logging
from hookrelay.utils.metrics import status_class


@pytest.mark.parametrize(
    ("status_code", "expected"),
    [(200, "2xx"), (204, "2xx"), (301, "3xx"), (404, "4xx"), (503, "5xx"), (0, "transport_error")],
)
def test_status_class(status_code, expected):
    assert status_class(status_code) == expected


@pytest.mark.parametrize("fmt", ["json", "console"])
def test_setup_logging_configures_structlog(fmt, capsys):
    setup_logging("DEBUG", fmt)
    get_logger("hookrelay.test").info("Webhook delivered", status=200)
    assert "Webhook delivered" in capsys.readouterr().err
    structlog.reset_defaults()


def test_setup_logging_filters_below_level(capsys):
    setup_logging("WARNING", "json")
    get_logger("hookrelay.test").info("quiet")
    assert capsys.readouterr().err == ""
    structlog.reset_defaults()


class TestErrors:
    def test_status_codes(self):
        webhook_id = uuid.uuid4()
        assert RegistryUnavailableError().status_code == 503
        assert WebhookNotFoundError(webhook_id).status_code == 404
        assert PersistenceError(webhook_id, "boom").status_code == 500

    def test_persistence_error_message(self):
        webhook_id = uuid.uuid4()
        error = PersistenceError(webhook_id, "disk full")
        assert str(webhook_id) in error.message
        assert "disk full" in error.message

    def test_dispatch_error_keeps_failures(self):
        webhook_id = uuid.uuid4()
        failures = {webhook_id: PersistenceError(webhook_id, "boom")}
        error = DispatchError(failures, result=None)
        assert isinstance(error, HookRelayError)
        assert error.failures == failures
        assert "1 webhook" in error.message

    def test_enqueue_error_keeps_committed_entries(self):
        webhook_id = uuid.uuid4()
        failures = {webhook_id: PersistenceError(webhook_id, "boom")}
        error = EnqueueError(failures, entries=["committed"])
        assert isinstance(error, HookRelayError)
        assert error.entries == ["committed"]
        assert "1 webhook" in error.message
