from __future__ import annotations

import json
import threading
import time
import uuid
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import AbstractContextManager, contextmanager
from typing import Any

import httpx
from pydantic import HttpUrl, TypeAdapter, ValidationError
from pydantic_core import to_json
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from hookrelay.config import Settings, get_settings
from hookrelay.db.models import WebhookQueueEntry, WebhookSubscription
from hookrelay.db.repositories.log_repo import WebhookLogRepository
from hookrelay.db.repositories.queue_repo import WebhookQueueRepository
from hookrelay.db.repositories.webhook_repo import WebhookRepository
from hookrelay.db.sync_session import get_sync_session
from hookrelay.events import EventTypeRegistry
from hookrelay.schemas.webhooks import DeliveryResult, DispatchResult
from hookrelay.utils.exceptions import (
    DispatchError,
    EnqueueError,
    HookRelayError,
    PersistenceError,
    RegistryUnavailableError,
    WebhookNotFoundError,
)
from hookrelay.utils.logging import get_logger
from hookrelay.utils.metrics import (
    WEBHOOK_BATCH_SIZE,
    WEBHOOK_DELIVERY_COUNT,
    WEBHOOK_DELIVERY_LATENCY,
    WEBHOOK_ENQUEUE_FAILURES,
    WEBHOOK_QUEUED_COUNT,
    status_class,
)

logger = get_logger(__name__)

# Status recorded when no HTTP response was received
TRANSPORT_FAILURE_STATUS = 0

_url_adapter = TypeAdapter(HttpUrl)

SessionFactory = Callable[[], AbstractContextManager[Session]]


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


class WebhookService:
    """Queues event payloads for matching webhooks and delivers them.

    Every unit of work (one enqueue, one delivery) runs in its own session,
    so a failure for one subscription never rolls back another. Deliveries
    to different subscriptions run concurrently; deliveries to the same
    subscription are serialized.
    """

    def __init__(
        self,
        event_types: EventTypeRegistry,
        session_factory: SessionFactory = get_sync_session,
        http_client: httpx.Client | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.event_types = event_types
        self.session_factory = session_factory
        self.timeout = settings.WEBHOOK_TIMEOUT
        self.queue_limit = settings.WEBHOOK_QUEUE_LIMIT
        self.max_workers = max(1, settings.WEBHOOK_MAX_WORKERS)
        self.dispatch_deadline = settings.WEBHOOK_DISPATCH_DEADLINE
        self.registry_retries = max(1, settings.WEBHOOK_REGISTRY_RETRIES)

        self._http_client = http_client
        self._owns_client = http_client is None
        self._pool: ThreadPoolExecutor | None = None
        # webhook id -> (lock, number of callers holding or waiting for it)
        self._locks: dict[uuid.UUID, tuple[threading.Lock, int]] = {}
        self._locks_guard = threading.Lock()

    @property
    def http_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(timeout=self.timeout)
        return self._http_client

    @property
    def pool(self) -> ThreadPoolExecutor:
        if self._pool is None:
            self._pool = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="webhook-deliver",
            )
        return self._pool

    def close(self) -> None:
        """Wait for running deliveries, then release the pool and HTTP client."""
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None
        if self._owns_client and self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def match_subscriptions(self, event_types: Iterable[str]) -> list[WebhookSubscription]:
        """Return active subscriptions listening to any of ``event_types``."""
        wanted = frozenset(event_types)
        return self._read_subscriptions(
            lambda repo: repo.find_by_event_types(wanted)
        )

    def _read_subscriptions(
        self, query: Callable[[WebhookRepository], list[WebhookSubscription]]
    ) -> list[WebhookSubscription]:
        retrying = Retrying(
            stop=stop_after_attempt(self.registry_retries),
            wait=wait_exponential(multiplier=0.1, max=2),
            retry=retry_if_exception_type((OperationalError, DBAPIError)),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    with self.session_factory() as session:
                        return query(WebhookRepository(session))
        except SQLAlchemyError as e:
            logger.error("Webhook subscription lookup failed", error=str(e))
            raise RegistryUnavailableError(
                f"Webhook subscriptions could not be loaded: {e}"
            ) from e

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def enqueue(
        self, subscriptions: Sequence[WebhookSubscription], payload: Any
    ) -> list[WebhookQueueEntry]:
        """Queue ``payload`` once for every subscription.

        Each entry is committed on its own. A failing subscription does not
        stop the others; once all were tried, ``EnqueueError`` is raised with
        the failures and the entries that were committed. Retry only the
        failed subscriptions to avoid duplicates.
        """
        body = serialize_payload(payload)
        entries: list[WebhookQueueEntry] = []
        failures: dict[uuid.UUID, PersistenceError] = {}
        for webhook in subscriptions:
            try:
                entries.append(self._enqueue_one(webhook, body))
            except PersistenceError as e:
                failures[webhook.id] = e

        if failures:
            raise EnqueueError(failures, entries)
        return entries

    def _enqueue_one(self, webhook: WebhookSubscription, body: str) -> WebhookQueueEntry:
        try:
            with self.session_factory() as session:
                entry = WebhookQueueRepository(session).add(webhook.id, body)
        except SQLAlchemyError as e:
            WEBHOOK_ENQUEUE_FAILURES.inc()
            logger.error(
                "Failed to queue webhook payload",
                webhook_id=str(webhook.id),
                error=str(e),
            )
            raise PersistenceError(webhook.id, str(e)) from e

        WEBHOOK_QUEUED_COUNT.inc()
        return entry

    def assemble_payload(
        self,
        webhook: WebhookSubscription,
        start: int = 0,
        limit: int | None = None,
    ) -> list[Any]:
        """Decode a window of the subscription's queue, oldest first."""
        if limit is None:
            limit = self.queue_limit
        with self.session_factory() as session:
            entries = WebhookQueueRepository(session).find_by_webhook_id(
                webhook.id, start, limit
            )
        return [json.loads(entry.payload) for entry in entries]

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def deliver(self, webhook: WebhookSubscription) -> DeliveryResult:
        """POST the pending queue window to the webhook URL and log the outcome.

        Exactly one log entry is written per call, whatever the HTTP outcome.
        The delivered entries are removed from the queue only on a 2xx response.
        """
        with self._serialized(webhook.id):
            try:
                with self.session_factory() as session:
                    subscription = WebhookRepository(session).get_for_update(webhook.id)
                    if subscription is None:
                        raise WebhookNotFoundError(webhook.id)

                    queue_repo = WebhookQueueRepository(session)
                    entries = queue_repo.find_by_webhook_id(
                        subscription.id, 0, self.queue_limit
                    )
                    payload = [json.loads(entry.payload) for entry in entries]

                    status_code, error, runtime = self._post(subscription.url, payload)
                    WebhookLogRepository(session).add(
                        subscription.id, status_code, error=error, runtime=runtime
                    )
                    if is_success(status_code):
                        queue_repo.delete_entries([entry.id for entry in entries])
            except SQLAlchemyError as e:
                logger.error(
                    "Failed to record webhook delivery",
                    webhook_id=str(webhook.id),
                    error=str(e),
                )
                raise PersistenceError(webhook.id, str(e)) from e

        success = is_success(status_code)
        WEBHOOK_DELIVERY_COUNT.labels(status_class=status_class(status_code)).inc()
        WEBHOOK_BATCH_SIZE.observe(len(payload))

        log = logger.info if success else logger.warning
        log(
            "Webhook delivered",
            webhook_id=str(webhook.id),
            status=status_code,
            count=len(payload),
            error=error,
        )
        return DeliveryResult(
            webhook_id=webhook.id,
            status_code=status_code,
            batch_size=len(payload),
            delivered_count=len(payload) if success else 0,
            success=success,
            error=error,
            runtime=runtime,
        )

    def deliver_by_id(self, webhook_id: uuid.UUID) -> DeliveryResult:
        with self.session_factory() as session:
            webhook = WebhookRepository(session).get(webhook_id)
        if webhook is None:
            raise WebhookNotFoundError(webhook_id)
        return self.deliver(webhook)

    def deliver_many(
        self, webhooks: Sequence[WebhookSubscription]
    ) -> tuple[list[DeliveryResult], dict[uuid.UUID, HookRelayError], list[uuid.UUID]]:
        """Deliver to several subscriptions in parallel.

        Returns the results in the order of ``webhooks``, the errors of the
        subscriptions whose delivery could not be recorded, and the ids still
        in flight when the dispatch deadline passed. Those deliveries are not
        cancelled: they finish in the background and write their log entries.
        """
        if not webhooks:
            return [], {}, []

        results: dict[uuid.UUID, DeliveryResult] = {}
        failures: dict[uuid.UUID, HookRelayError] = {}
        pending: list[uuid.UUID] = []

        futures = {self.pool.submit(self.deliver, webhook): webhook for webhook in webhooks}
        try:
            for future in as_completed(futures, timeout=self.dispatch_deadline):
                webhook = futures[future]
                try:
                    results[webhook.id] = future.result()
                except HookRelayError as e:
                    failures[webhook.id] = e
        except TimeoutError:
            pending = [wh.id for f, wh in futures.items() if not f.done()]
            logger.warning(
                "Webhook dispatch deadline exceeded",
                deadline=self.dispatch_deadline,
                pending=[str(webhook_id) for webhook_id in pending],
            )

        ordered = [results[wh.id] for wh in webhooks if wh.id in results]
        return ordered, failures, pending

    def _post(self, url: str, payload: list[Any]) -> tuple[int, str | None, float | None]:
        try:
            _url_adapter.validate_python(url)
        except ValidationError:
            return TRANSPORT_FAILURE_STATUS, f"Invalid webhook URL: {url!r}", None

        started = time.perf_counter()
        try:
            response = self.http_client.post(
                url,
                content=json.dumps(payload),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            runtime = time.perf_counter() - started
            return TRANSPORT_FAILURE_STATUS, f"{type(e).__name__}: {e}", runtime

        runtime = time.perf_counter() - started
        WEBHOOK_DELIVERY_LATENCY.observe(runtime)
        return response.status_code, None, runtime

    @contextmanager
    def _serialized(self, webhook_id: uuid.UUID) -> Iterator[None]:
        """Hold the per-webhook lock; drop it once nobody holds or waits for it."""
        with self._locks_guard:
            lock, users = self._locks.get(webhook_id, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[webhook_id] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._locks_guard:
                lock, users = self._locks[webhook_id]
                if users == 1:
                    del self._locks[webhook_id]
                else:
                    self._locks[webhook_id] = (lock, users - 1)

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def dispatch(
        self,
        event_types: Iterable[str] | str,
        payload: Any,
        deliver_immediately: bool = False,
    ) -> DispatchResult:
        """Queue an event payload for every matching webhook.

        With ``deliver_immediately`` the matched webhooks are delivered right
        after their entries are committed. Raises ``DispatchError`` once all
        subscriptions have been handled if any of them failed.
        """
        if isinstance(event_types, str):
            event_types = [event_types]

        known, unknown = self.event_types.partition(event_types)
        if unknown:
            logger.warning("Ignoring unknown event types", event_types=sorted(unknown))

        result = DispatchResult(event_types=sorted(known))
        if not known:
            return result

        webhooks = self.match_subscriptions(known)
        if not webhooks:
            return result

        result.matched = [wh.id for wh in webhooks]

        failures: dict[uuid.UUID, HookRelayError] = {}
        try:
            entries = self.enqueue(webhooks, payload)
        except EnqueueError as e:
            entries = e.entries
            failures.update(e.failures)
        result.queued = {entry.webhook_id: entry.id for entry in entries}
        queued = [wh for wh in webhooks if wh.id in result.queued]

        logger.info(
            "Webhook payload queued",
            event_types=result.event_types,
            matched=len(webhooks),
            queued=len(queued),
        )

        if deliver_immediately and queued:
            result.deliveries, delivery_failures, result.pending = self.deliver_many(queued)
            failures.update(delivery_failures)

        if failures:
            raise DispatchError(failures, result)
        return result

    def process_pending(self) -> list[DeliveryResult]:
        """Deliver once to every subscription with queued payloads."""
        webhooks = self._read_subscriptions(lambda repo: repo.list_with_pending())
        deliveries, failures, pending = self.deliver_many(webhooks)
        for webhook_id, error in failures.items():
            logger.error(
                "Webhook queue processing failed",
                webhook_id=str(webhook_id),
                error=error.message,
            )
        logger.info(
            "Webhook queues processed",
            webhooks=len(webhooks),
            delivered=len(deliveries),
            failed=len(failures),
            in_flight=len(pending),
        )
        return deliveries


def serialize_payload(payload: Any) -> str:
    """Encode an event payload as JSON text for the queue."""
    return to_json(payload).decode()
