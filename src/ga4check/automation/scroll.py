import logging
from typing import List, Tuple

from ..config.settings import Settings
from .correlator import Correlator
from .types import CheckResult, EventCategory

logger = logging.getLogger("ga4check")


def _js_scroll_height_script() -> str:
    return "() => Math.max(document.body ? document.body.scrollHeight : 0, document.documentElement.scrollHeight)"


def _js_scroll_to_script() -> str:
    return "(y) => window.scrollTo(0, y)"


def scroll_positions(thresholds: List[int], page_height: int, buffer_px: int = 0) -> List[Tuple[int, int]]:
    """Unique thresholds in ascending order, each paired with its target scrollY."""
    return [
        (threshold, int(round(threshold / 100.0 * page_height)) + buffer_px)
        for threshold in sorted(set(thresholds))
    ]


class ScrollTester:
    def __init__(self, engine, settings: Settings, correlator: Correlator):
        self.engine = engine
        self.settings = settings
        self.correlator = correlator

    def run(self) -> List[CheckResult]:
        height = int(self.engine.evaluate(_js_scroll_height_script()) or 0)
        positions = scroll_positions(self.settings.scroll.thresholds, height, self.settings.scroll.buffer_px)
        logger.info(f"[scroll] 📜 scrolling {len(positions)} thresholds (page height {height}px)")
        results: List[CheckResult] = []
        for threshold, y in positions:
            descriptor = f"{threshold}%"
            self.correlator.record_triggering_action(EventCategory.SCROLL, descriptor)
            self.engine.evaluate(_js_scroll_to_script(), y)
            correlation = self.correlator.await_correlated_event(
                EventCategory.SCROLL, descriptor, timeout_ms=self.settings.scroll.event_delay_ms
            )
            check = CheckResult.from_correlation(f"scroll:{descriptor}", correlation)
            check.details["scroll_y"] = y
            results.append(check)
        fired = sum(1 for r in results if r.passed)
        logger.info(f"[scroll] scroll thresholds that produced GA4 events: {fired}/{len(results)}")
        return results
