"""Fire-and-forget notification dispatch."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

import requests

from ..config.settings import WhistleCounterConfig

logger = logging.getLogger(__name__)

WEBHOOK_PAYLOAD = {"value1": "Whistles Reached"}


@dataclass(frozen=True)
class NotificationTarget:
    """An opaque external sink called once when the target is reached."""
    name: str
    url: str
    method: str = "GET"
    payload: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class NotificationOutcome:
    target: NotificationTarget
    ok: bool
    detail: str = ""


@dataclass
class DispatchReport:
    outcomes: List[NotificationOutcome] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)


class NotificationPort(Protocol):
    def send(self, target: NotificationTarget) -> Any: ...


def targets_from_config(config: WhistleCounterConfig) -> List[NotificationTarget]:
    """Build one target per non-empty URL slot."""
    targets = []
    if config.webhook_url:
        targets.append(NotificationTarget(name="webhook", url=config.webhook_url, method="POST", payload=dict(WEBHOOK_PAYLOAD)))
    if config.message_url:
        targets.append(NotificationTarget(name="message", url=config.message_url, method="GET"))
    return targets


class HttpNotificationPort:
    """Sends notifications over HTTP with requests."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: Optional[float] = None):
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(self, target: NotificationTarget) -> int:
        response = self.session.request(
            target.method,
            target.url,
            json=target.payload,
            timeout=self.timeout,
        )
        return response.status_code


class NotificationDispatcher:
    """
    Sends every target once, concurrently, and waits for all of them to settle.

    Outcomes are recorded for logging only; a failing target never raises and
    is never retried.
    """

    def __init__(self, port: Optional[NotificationPort] = None, max_workers: int = 2):
        self._port = port or HttpNotificationPort()
        self._max_workers = max_workers

    def _send_one(self, target: NotificationTarget) -> NotificationOutcome:
        try:
            result = self._port.send(target)
        except Exception as e:
            logger.warning(f"Notification '{target.name}' failed: {e}")
            return NotificationOutcome(target=target, ok=False, detail=str(e))
        logger.info(f"Notification '{target.name}' sent ({result})")
        return NotificationOutcome(target=target, ok=True, detail=str(result))

    def dispatch(self, targets: Sequence[NotificationTarget]) -> DispatchReport:
        if not targets:
            return DispatchReport()

        logger.info(f"Dispatching {len(targets)} notification(s)")
        workers = max(1, min(self._max_workers, len(targets)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="Notify") as executor:
            outcomes = list(executor.map(self._send_one, targets))
        return DispatchReport(outcomes=outcomes)
