"""
A tracking session: one page under test, one network observer, one
correlator, and every enabled check family run against them in order.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..config.loader import load_form_configs, select_form_config
from ..config.models import FormConfig
from ..config.settings import Settings
from .actions import ActionRunner
from .clicks import ClickCheck, ClickTester
from .consent import dismiss_consent
from .correlator import Correlator, EventClassifier
from .discovery import detect_forms
from .errors import ConfigurationError, Ga4CheckError, InteractionError
from .forms import FormTester
from .network import EventParameterDictionary, NetworkObserver
from .scroll import ScrollTester
from .sites.base_site import SiteProfile
from .types import CheckResult, EventCategory, Verdict, now_ms

logger = logging.getLogger("ga4check")


@dataclass
class SessionOptions:
    form_config: Optional[str] = None
    screenshot: bool = True


@dataclass
class SessionReport:
    url: str
    site: str
    results: List[CheckResult] = field(default_factory=list)
    form: Optional[str] = None
    form_selection: str = "none"
    events_captured: int = 0
    screenshot: Optional[str] = None


class TrackingSession:
    def __init__(
        self,
        engine,
        url: str,
        site: SiteProfile,
        settings: Settings,
        options: Optional[SessionOptions] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        clock = clock or now_ms
        self.engine = engine
        self.url = url
        self.site = site
        self.settings = settings
        self.options = options or SessionOptions()
        self.clock = clock
        self.observer = NetworkObserver(
            settings.ga4_urls, EventParameterDictionary(settings.event_params), clock=clock
        )
        self.correlator = Correlator(
            self.observer,
            EventClassifier(settings.click.exclude_keywords, settings.scroll.event_keywords),
            wait=engine.wait,
            clock=clock,
            min_event_delay_ms=settings.min_event_delay_ms,
            poll_interval_ms=settings.poll_interval_ms,
        )
        self.actions = ActionRunner(engine, settings)
        self.report = SessionReport(url=url, site=site.domain or "default")

    def _run_hook(self, steps: List, label: str) -> bool:
        if not steps:
            return True
        try:
            self.actions.run(steps, label=label)
            return True
        except InteractionError as e:
            logger.error(f"[session] {label} failed: {e}")
            self.report.results.append(CheckResult(
                name=f"hook:{label}", verdict=Verdict.INTERACTION_ERROR, message=str(e), category="hook"
            ))
            return False
        except ConfigurationError as e:
            logger.error(f"[session] {label} misconfigured: {e}")
            self.report.results.append(CheckResult(
                name=f"hook:{label}", verdict=Verdict.CONFIG_ERROR, message=str(e), category="hook"
            ))
            return False

    def load_page(self) -> None:
        """Navigate to the target URL, check the initial page_view, and clear consent."""
        track_page_view = self.settings.enabled("page_view")
        if track_page_view:
            self.correlator.record_triggering_action(EventCategory.PAGE_VIEW, self.url)
        logger.info(f"[session] 🌐 loading {self.url}")
        self.engine.goto(self.url, timeout_ms=self.settings.browser_timeout_ms)
        self.engine.wait(self.settings.page_load_timeout_ms)
        if track_page_view:
            correlation = self.correlator.await_correlated_event(
                EventCategory.PAGE_VIEW, self.url, timeout_ms=self.settings.page_view_timeout_ms
            )
            self.report.results.append(CheckResult.from_correlation("page_view", correlation))
        dismiss_consent(self.engine, self.settings.consent_frameworks, self.settings.network_wait_ms)

    def refresh_page(self) -> None:
        """Reload the page under test and replay the site's after-refresh actions."""
        self.engine.goto(self.url, timeout_ms=self.settings.browser_timeout_ms)
        self.engine.wait(self.settings.page_load_timeout_ms)
        if self.site.after_refresh_actions:
            self.actions.run(self.site.after_refresh_actions, label="after-refresh actions")

    def run_scroll_checks(self) -> None:
        try:
            self.report.results.extend(ScrollTester(self.engine, self.settings, self.correlator).run())
            self.engine.evaluate("() => window.scrollTo(0, 0)")
        except InteractionError as e:
            logger.error(f"[session] scroll checks aborted: {e}")
            self.report.results.append(CheckResult(
                name="scroll", verdict=Verdict.INTERACTION_ERROR, message=str(e), category="analytics"
            ))

    def run_click_checks(self) -> None:
        """Configured click checks, or every clickable element when the site configures none."""
        try:
            checks = [ClickCheck.from_dict(c) if isinstance(c, dict) else c for c in self.site.click_checks]
        except ConfigurationError as e:
            logger.error(f"[session] click checks skipped: {e}")
            self.report.results.append(CheckResult(
                name="click:config", verdict=Verdict.CONFIG_ERROR, message=str(e), category="analytics"
            ))
            return
        tester = ClickTester(self.engine, self.settings, self.correlator)
        if checks:
            self.report.results.extend(tester.run(checks))
            return
        logger.info("[session] no click checks configured for this site, discovering clickable elements")
        try:
            checks = tester.discover_checks()
        except InteractionError as e:
            logger.error(f"[session] click discovery failed: {e}")
            self.report.results.append(CheckResult(
                name="click", verdict=Verdict.INTERACTION_ERROR, message=str(e), category="analytics"
            ))
            return
        # discovered elements may navigate away, so each click starts from a fresh page
        self.report.results.extend(tester.run(checks, refresh=self.refresh_page))
        if checks:
            try:
                self.refresh_page()
            except Ga4CheckError as e:
                logger.warning(f"[session] could not restore page after click checks: {e}")

    def run_exit_modal_checks(self) -> None:
        tester = ClickTester(self.engine, self.settings, self.correlator)
        try:
            checks = tester.exit_modal_checks()
        except InteractionError as e:
            logger.error(f"[session] exit modal lookup failed: {e}")
            self.report.results.append(CheckResult(
                name="exit_modal", verdict=Verdict.INTERACTION_ERROR, message=str(e), category="analytics"
            ))
            return
        if not checks:
            logger.info("[session] no exit modal links on this page")
        self.report.results.extend(tester.run(checks))

    def choose_form(self) -> Optional[FormConfig]:
        """Named config, then a page-path match, then auto-detection."""
        forms = load_form_configs(self.site)
        config, how = select_form_config(forms, self.engine.current_url(), self.options.form_config)
        if config is None:
            logger.info("[session] no form config matches this page, scanning for forms")
            detected = detect_forms(self.engine)
            if not detected:
                return None
            config, how = detected[0], "auto"
        self.report.form = config.name
        self.report.form_selection = how
        logger.info(f"[session] 📝 testing form '{config.name}' ({how})")
        return config

    def run_form_checks(self) -> None:
        if not self._run_hook(self.site.pre_form_actions, "pre-form actions"):
            return
        try:
            config = self.choose_form()
        except ConfigurationError as e:
            logger.error(f"[session] form testing skipped: {e}")
            self.report.results.append(CheckResult(
                name="form:config", verdict=Verdict.CONFIG_ERROR, message=str(e), category="form"
            ))
            return
        if config is None:
            self.report.results.append(CheckResult(
                name="form", verdict=Verdict.SKIPPED, message="no form found on page", category="form"
            ))
            return
        self.correlator.reset()
        try:
            tester = FormTester(
                self.engine, config, self.settings, self.correlator,
                after_refresh_actions=self.site.after_refresh_actions, clock=self.clock,
            )
        except ConfigurationError as e:
            self.report.results.append(CheckResult(
                name=f"form:{config.name}", verdict=Verdict.CONFIG_ERROR, message=str(e), category="form"
            ))
            return
        self.report.results.extend(tester.run_all())

    def take_screenshot(self) -> None:
        path = self.settings.screenshot_path
        try:
            self.engine.screenshot(path)
            self.report.screenshot = path
            logger.info(f"[session] 📸 screenshot saved: {path}")
        except InteractionError as e:
            logger.warning(f"[session] screenshot failed: {e}")

    def run(self) -> SessionReport:
        """Run every enabled check family. NavigationError propagates."""
        self.observer.attach(self.engine)
        self.load_page()
        self._run_hook(self.site.pre_test_actions, "pre-test actions")

        if self.settings.enabled("scroll"):
            self.run_scroll_checks()
            self.correlator.reset()
        if self.settings.enabled("click"):
            self.run_click_checks()
            self.correlator.reset()
        if self.settings.enabled("exit_modal"):
            self.run_exit_modal_checks()
            self.correlator.reset()
        if self.settings.enabled("forms"):
            self.run_form_checks()

        if self.options.screenshot:
            self.take_screenshot()
        self.report.events_captured = len(self.observer.events)
        return self.report
