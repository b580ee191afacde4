"""
Classification of captured GA4 events and their correlation with user actions.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Union

from .errors import CorrelationError
from .network import NetworkObserver
from .polling import poll_until
from .types import (
    CapturedEvent,
    CorrelationResult,
    EventCategory,
    ExpectedParam,
    TriggeringAction,
    Verdict,
    now_ms,
)

logger = logging.getLogger("ga4check")

PAGE_VIEW_NAMES = ("page_view", "pageview", "page view")
EXIT_MODAL_KEYWORDS = ("exit modal", "exit_modal", "exit-modal")

Expectation = Union[str, ExpectedParam]


class EventClassifier:
    def __init__(self, click_exclude_keywords: Iterable[str], scroll_keywords: Iterable[str]):
        self.click_exclude_keywords = [k.lower() for k in click_exclude_keywords]
        self.scroll_keywords = [k.lower() for k in scroll_keywords]

    @staticmethod
    def _text(event: CapturedEvent, *names: str) -> str:
        return " ".join((event.get(n) or "") for n in names).lower()

    def is_page_view(self, event: CapturedEvent) -> bool:
        return event.name.lower() in PAGE_VIEW_NAMES

    def is_scroll(self, event: CapturedEvent) -> bool:
        text = self._text(event, "eventName", "eventAction", "eventLabel")
        return any(k in text for k in self.scroll_keywords)

    def form_category(self, event: CapturedEvent) -> Optional[EventCategory]:
        name = event.name.lower()
        if name.startswith("form_start"):
            return EventCategory.FORM_START
        if name.startswith("form_field"):
            return EventCategory.FORM_FIELD
        if name.startswith("form_submi"):
            return EventCategory.FORM_SUBMIT
        if name.startswith("form_error"):
            return EventCategory.FORM_ERROR
        return None

    def is_exit_modal(self, event: CapturedEvent) -> bool:
        text = self._text(event, "eventName", "eventCategory", "eventAction", "eventLabel")
        return any(k in text for k in EXIT_MODAL_KEYWORDS)

    def is_click(self, event: CapturedEvent) -> bool:
        text = self._text(event, "eventName", "eventAction")
        if not text.strip():
            return False
        return not any(k in text for k in self.click_exclude_keywords)

    def classify(self, event: CapturedEvent) -> EventCategory:
        if self.is_page_view(event):
            return EventCategory.PAGE_VIEW
        if self.is_scroll(event):
            return EventCategory.SCROLL
        form = self.form_category(event)
        if form is not None:
            return form
        if self.is_exit_modal(event):
            return EventCategory.EXIT_MODAL
        if self.is_click(event):
            return EventCategory.CLICK
        return EventCategory.OTHER


def compare_params(
    event: CapturedEvent, expected: Optional[Mapping[str, Expectation]]
) -> Dict[str, Dict[str, Optional[str]]]:
    """Return ``{name: {expected, observed}}`` for every parameter that does not match."""
    mismatches: Dict[str, Dict[str, Optional[str]]] = {}
    for name, want in (expected or {}).items():
        if not isinstance(want, ExpectedParam):
            want = ExpectedParam(str(want))
        observed = event.get(name)
        if not want.matches(observed):
            mismatches[name] = {"expected": want.value, "observed": observed}
    return mismatches


class Correlator:
    """Pairs triggering actions with the GA4 events they caused.

    Owned by a single test-run session. Only the most recent action of each
    kind is pending; an event attributed to one action is never attributed to
    another. Call :meth:`reset` between scenarios.
    """

    def __init__(
        self,
        observer: NetworkObserver,
        classifier: EventClassifier,
        wait: Callable[[int], None],
        clock: Callable[[], int] = now_ms,
        min_event_delay_ms: int = 0,
        poll_interval_ms: int = 250,
    ):
        self.observer = observer
        self.classifier = classifier
        self.wait = wait
        self.clock = clock
        self.min_event_delay_ms = min_event_delay_ms
        self.poll_interval_ms = poll_interval_ms
        self._pending: Dict[EventCategory, TriggeringAction] = {}
        self._consumed: Dict[int, CapturedEvent] = {}

    def reset(self) -> None:
        self._pending.clear()
        self._consumed.clear()

    def pending(self, kind: EventCategory) -> Optional[TriggeringAction]:
        return self._pending.get(kind)

    def record_triggering_action(self, kind: EventCategory, descriptor: str = "") -> TriggeringAction:
        action = TriggeringAction(timestamp=self.clock(), kind=kind, descriptor=descriptor)
        self._pending[kind] = action
        logger.debug(f"[correlator] {kind.value} action recorded: {descriptor}")
        return action

    def candidates(self, action: TriggeringAction, timeout_ms: int) -> List[CapturedEvent]:
        start = action.timestamp + self.min_event_delay_ms
        end = action.timestamp + timeout_ms
        return [
            event for event in self.observer.events
            if start <= event.timestamp <= end
            and id(event) not in self._consumed
            and self.classifier.classify(event) == action.kind
        ]

    def await_correlated_event(
        self,
        kind: EventCategory,
        descriptor: Optional[str] = None,
        timeout_ms: int = 8000,
        expected: Optional[Mapping[str, Expectation]] = None,
    ) -> CorrelationResult:
        action = self._pending.get(kind)
        if action is None or (descriptor is not None and action.descriptor != descriptor):
            raise CorrelationError(f"No pending {kind.value} action for {descriptor!r}")

        def probe() -> Optional[CapturedEvent]:
            found = self.candidates(action, timeout_ms)
            # earliest first: analytics tags fire once per threshold crossing
            return min(found, key=lambda e: e.timestamp) if found else None

        remaining = action.timestamp + timeout_ms - self.clock()
        event = poll_until(probe, remaining, self.wait, self.clock, self.poll_interval_ms)
        del self._pending[kind]

        if event is None:
            logger.info(f"[correlator] ⏱ no {kind.value} event for {action.descriptor} within {timeout_ms}ms")
            return CorrelationResult(action=action, verdict=Verdict.TIMEOUT)

        self._consumed[id(event)] = event
        elapsed = event.timestamp - action.timestamp
        mismatches = compare_params(event, expected)
        verdict = Verdict.MISMATCH if mismatches else Verdict.PASS
        logger.info(f"[correlator] {kind.value} {action.descriptor}: {event.name} after {elapsed}ms ({verdict.value})")
        return CorrelationResult(
            action=action,
            verdict=verdict,
            event=event,
            mismatches=mismatches,
            elapsed_ms=elapsed,
        )
