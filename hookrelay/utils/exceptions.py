from __future__ import annotations


class HookRelayError(Exception):
    """Base exception for all HookRelay errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class RegistryUnavailableError(HookRelayError):
    """Raised when webhook subscriptions cannot be read."""

    def __init__(self, message: str = "Webhook subscriptions could not be loaded"):
        super().__init__(message, status_code=503)


class PersistenceError(HookRelayError):
    """Raised when a queue entry or delivery log cannot be written."""

    def __init__(self, webhook_id, message: str):
        self.webhook_id = webhook_id
        super().__init__(
            f"Persistence failed for webhook '{webhook_id}': {message}",
            status_code=500,
        )


class WebhookNotFoundError(HookRelayError):
    """Raised when a webhook subscription does not exist."""

    def __init__(self, webhook_id):
        super().__init__(f"Webhook '{webhook_id}' not found.", status_code=404)


class DispatchError(HookRelayError):
    """Raised after a dispatch in which some subscriptions could not be processed.

    The subscriptions that were queued (and delivered, if requested) are in
    ``result``; ``failures`` maps each failed webhook id to its error.
    """

    def __init__(self, failures: dict, result):
        self.failures = failures
        self.result = result
        super().__init__(
            f"Webhook dispatch failed for {len(failures)} webhook(s)",
            status_code=500,
        )


class EnqueueError(HookRelayError):
    """Raised after an enqueue in which some subscriptions could not be queued.

    Every other subscription was still queued; its entries are in ``entries``.
    ``failures`` maps each failed webhook id to its ``PersistenceError``.
    """

    def __init__(self, failures: dict, entries: list):
        self.failures = failures
        self.entries = entries
        super().__init__(
            f"Failed to queue payload for {len(failures)} webhook(s)",
            status_code=500,
        )
