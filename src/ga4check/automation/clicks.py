"""
Click and exit-modal checks: click an element, then pair the GA4 event it
fires with the click and compare its parameters against expectations.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..config.settings import Settings
from .correlator import Correlator, Expectation
from .errors import ConfigurationError, Ga4CheckError, InteractionError
from .types import CheckResult, EventCategory, ExpectedParam, MatchMode, Verdict

logger = logging.getLogger("ga4check")


def _js_is_link_script() -> str:
    return (
        "([selector, index]) => {"
        "  const el = document.querySelectorAll(selector)[index];"
        "  return !!(el && el.closest('a[href]'));"
        "}"
    )


def _js_scan_clickables_script() -> str:
    # Returns [{index, excluded, label}] in document order for the combined selector
    return (
        "([selector, exclude]) => Array.from(document.querySelectorAll(selector)).map((el, index) => ({"
        " index,"
        " excluded: exclude.some((sel) => { try { return !!el.closest(sel); } catch (e) { return false; } }),"
        " label: String(el.innerText || el.value || el.getAttribute('aria-label') || el.getAttribute('href') || el.tagName.toLowerCase()).trim().slice(0, 60)"
        "}))"
    )


def _parse_expectation(name: str, value: Any) -> Expectation:
    if isinstance(value, ExpectedParam):
        return value
    if isinstance(value, dict):
        try:
            return ExpectedParam(str(value["value"]), MatchMode(value.get("mode", "exact")))
        except (KeyError, ValueError) as e:
            raise ConfigurationError(f"Invalid expectation for '{name}': {value!r}") from e
    return str(value)


@dataclass
class ClickCheck:
    name: str
    selector: str
    expect: Dict[str, Expectation] = field(default_factory=dict)
    kind: EventCategory = EventCategory.CLICK

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClickCheck':
        if not data.get("selector"):
            raise ConfigurationError(f"Click check without selector: {data!r}")
        try:
            kind = EventCategory(data.get("kind", "click"))
        except ValueError as e:
            raise ConfigurationError(f"Unknown click check kind: {data.get('kind')!r}") from e
        return cls(
            name=data.get("name") or data["selector"],
            selector=data["selector"],
            expect={k: _parse_expectation(k, v) for k, v in data.get("expect", {}).items()},
            kind=kind,
        )


class ClickTester:
    def __init__(self, engine, settings: Settings, correlator: Correlator):
        self.engine = engine
        self.settings = settings
        self.correlator = correlator

    def is_link(self, selector: str) -> bool:
        base, _, index = selector.partition(" >> nth=")
        return bool(self.engine.evaluate(_js_is_link_script(), [base, int(index or 0)]))

    def discover_checks(self) -> List[ClickCheck]:
        """One check per clickable element on the page, consent and exit-modal controls excluded."""
        selector = ", ".join(self.settings.click.selectors)
        if not selector:
            return []
        exclude = list(self.settings.consent_selectors) + list(self.settings.exit_modal_selectors)
        found = self.engine.evaluate(_js_scan_clickables_script(), [selector, exclude])
        checks: List[ClickCheck] = []
        excluded = 0
        for element in found if isinstance(found, list) else []:
            if element.get("excluded"):
                excluded += 1
                continue
            index = int(element["index"])
            label = " ".join(str(element.get("label") or "").split())
            checks.append(ClickCheck(
                name=f"{label or 'element'} #{index + 1}",
                selector=f"{selector} >> nth={index}",
            ))
        logger.info(f"[clicks] found {len(checks)} clickable element(s), {excluded} excluded")
        return checks

    def exit_modal_checks(self) -> List[ClickCheck]:
        checks: List[ClickCheck] = []
        for selector in self.settings.exit_modal_selectors:
            for index in range(self.engine.count(selector)):
                checks.append(ClickCheck(
                    name=f"exit modal {selector} #{index + 1}",
                    selector=f"{selector} >> nth={index}",
                    kind=EventCategory.EXIT_MODAL,
                ))
        return checks

    def run_check(self, check: ClickCheck) -> CheckResult:
        name = f"{check.kind.value}:{check.name}"
        if check.selector in self.settings.consent_selectors:
            return CheckResult(name=name, verdict=Verdict.SKIPPED, message="consent control", category="analytics")
        try:
            return self._click_and_correlate(name, check)
        except InteractionError as e:
            logger.warning(f"[clicks] {e}")
            return CheckResult(name=name, verdict=Verdict.INTERACTION_ERROR, message=str(e), category="analytics")

    def _click_and_correlate(self, name: str, check: ClickCheck) -> CheckResult:
        if self.engine.count(check.selector) == 0:
            logger.info(f"[clicks] element not found: {check.selector}")
            return CheckResult(name=name, verdict=Verdict.SKIPPED, message="element not found", category="analytics")

        # links open in a new tab so the page under test stays put
        modifiers = ["ControlOrMeta"] if self.is_link(check.selector) else None
        self.correlator.record_triggering_action(check.kind, check.name)
        self.engine.click(check.selector, modifiers=modifiers, timeout_ms=self.settings.click.timeout_ms)
        self.engine.wait(self.settings.click.wait_after_click_ms)
        closed = self.engine.close_extra_pages()
        if closed:
            logger.debug(f"[clicks] closed {closed} extra tab(s)")

        correlation = self.correlator.await_correlated_event(
            check.kind, check.name, timeout_ms=self.settings.click.event_delay_ms, expected=check.expect
        )
        if check.kind == EventCategory.EXIT_MODAL:
            self.engine.press("Escape")
        return CheckResult.from_correlation(name, correlation)

    def run(self, checks: List[ClickCheck], refresh: Optional[Callable[[], None]] = None) -> List[CheckResult]:
        """Run checks in order, calling ``refresh`` before every check after the first."""
        if checks:
            logger.info(f"[clicks] 🖱 running {len(checks)} click check(s)")
        results: List[CheckResult] = []
        for index, check in enumerate(checks):
            if refresh is not None and index > 0:
                try:
                    refresh()
                except Ga4CheckError as e:
                    logger.error(f"[clicks] refresh before {check.name} failed: {e}")
                    results.append(CheckResult(
                        name=f"{check.kind.value}:{check.name}", verdict=Verdict.INTERACTION_ERROR,
                        message=str(e), category="analytics",
                    ))
                    continue
            results.append(self.run_check(check))
        return results
