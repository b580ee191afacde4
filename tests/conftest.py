import re
from typing import Any, Callable, Dict, List, Optional, Set
from urllib.parse import urlencode

import pytest

from ga4check.automation.errors import InteractionError, NavigationError
from ga4check.automation.sites import get_site
from ga4check.config.settings import Settings

GA4_ENDPOINT = "https://www.google-analytics.com/g/collect"


def ga4_hit(event_name: str, **params: str) -> str:
    query = {"v": "2", "tid": "G-TEST", "en": event_name}
    query.update(params)
    return f"{GA4_ENDPOINT}?{urlencode(query)}"


class FakeClock:
    def __init__(self, start: int = 1_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now


class FakePage:
    """A static page: present elements, visible elements and text."""

    def __init__(self, present=(), visible=(), texts=()):
        self.present: Set[str] = set(present)
        self.visible: Set[str] = set(visible)
        self.texts: List[str] = list(texts)
        self.on_click: Dict[str, Callable[["FakeEngine"], None]] = {}
        self.missing_after_reload: bool = False

    def reset(self, engine: "FakeEngine") -> None:
        if self.missing_after_reload:
            self.present.discard("form")

    def load(self, engine: "FakeEngine") -> None:
        pass

    def count(self, selector: str) -> int:
        return 1 if selector in self.present or selector in self.visible else 0

    def is_visible(self, selector: str) -> bool:
        return selector in self.visible

    def has_text(self, text: str) -> bool:
        return any(text in t for t in self.texts)

    def click(self, engine: "FakeEngine", selector: str) -> None:
        handler = self.on_click.get(selector)
        if handler is not None:
            handler(engine)

    def set_value(self, engine, selector: str, value: Any, how: str) -> None:
        pass

    def blur(self, engine) -> None:
        pass


SIGNUP_FIELD_SELECTOR = re.compile(r'input\[name="(\w+)"\]\[value="(.*)"\]')
CHECKBOX_GROUPS = ("subscription", "weight")
SIGNUP_REQUIRED = ["i_am", "prescription", "subscription", "first_name", "last_name", "email", "phone", "zip", "consent"]


class SignupPage(FakePage):
    """Simulated neffy consumer signup form with client-side validation and GA4 tags."""

    FORM_CODE = "form_neffy_consumer_signup"

    def __init__(self, form_code: str = FORM_CODE, event_delay_ms: int = 300, render_delay_ms: int = 200):
        super().__init__(present={"form", "#sign-up-form-submit"})
        self.form_code = form_code
        self.event_delay_ms = event_delay_ms
        self.render_delay_ms = render_delay_ms
        self.values: Dict[str, Any] = {}
        self.last_field: Optional[str] = None
        self.started = False
        # errors the page never renders
        self.broken_errors: Set[str] = set()
        self.ignore_submit = False
        self.show_success = True
        self.fire_events = True
        self.submissions = 0

    def reset(self, engine) -> None:
        super().reset(engine)
        self.values = {}
        self.visible = set()
        self.texts = []
        self.last_field = None
        self.started = False

    def _fire(self, engine, event_name: str, **params: str) -> None:
        if self.fire_events:
            engine.schedule_request(self.event_delay_ms, ga4_hit(event_name, **params))

    def set_value(self, engine, selector: str, value: Any, how: str) -> None:
        m = SIGNUP_FIELD_SELECTOR.match(selector)
        if m:
            name, option = m.group(1), m.group(2).replace('\\"', '"')
            if name in CHECKBOX_GROUPS:
                current = set(self.values.get(name, []))
                if how == "check":
                    current.add(option)
                else:
                    current.discard(option)
                self.values[name] = current
            elif how == "check":
                self.values[name] = option
        else:
            name = selector.lstrip("#")
            if how == "check":
                value = True
            elif how == "uncheck":
                value = False
            self.values[name] = value
        self.last_field = name
        if not self.started:
            self.started = True
            self._fire(engine, "form_start", **{"ep.form_code": self.form_code})

    def blur(self, engine) -> None:
        if self.last_field:
            self._fire(engine, "form_field", **{"ep.form_code": self.form_code, "ep.event_label": self.last_field})
            self.last_field = None

    def errors(self) -> List[str]:
        v = self.values
        invalid = []
        if not v.get("i_am"):
            invalid.append("i_am")
        if not v.get("prescription"):
            invalid.append("prescription")
        if not v.get("subscription"):
            invalid.append("subscription")
        for name in ("first_name", "last_name"):
            if not v.get(name):
                invalid.append(name)
        if "@" not in (v.get("email") or ""):
            invalid.append("email")
        if not re.fullmatch(r"\d{10}", v.get("phone") or ""):
            invalid.append("phone")
        if not re.fullmatch(r"\d{5}", v.get("zip") or ""):
            invalid.append("zip")
        if v.get("consent") is not True:
            invalid.append("consent")
        return [f"#error-{name}" for name in invalid]

    def click(self, engine, selector: str) -> None:
        if selector != "#sign-up-form-submit":
            return super().click(engine, selector)
        self.submissions += 1
        if self.ignore_submit:
            return
        errors = self.errors()
        if errors:
            shown = [e for e in errors if e not in self.broken_errors]
            engine.at(self.render_delay_ms, lambda: self.visible.update(shown))
            self._fire(engine, "form_error", **{"ep.form_code": self.form_code})
        else:
            if self.show_success:
                engine.at(self.render_delay_ms, lambda: self.visible.add(".sign-up-success"))
            self._fire(engine, "form_submission", **{"ep.form_code": self.form_code})


class FakeEngine:
    """In-memory stand-in for PlaywrightEngine driven by a fake clock.

    ``wait`` advances the clock and runs everything scheduled up to the new
    time, which is how request callbacks reach the observer.
    """

    def __init__(self, clock: Optional[FakeClock] = None, page: Optional[FakePage] = None):
        self.clock = clock or FakeClock()
        self.page = page or FakePage()
        self.url = ""
        self.callbacks: List[Callable] = []
        self._scheduled: List[tuple] = []
        self._seq = 0
        self.calls: List[tuple] = []
        self.started = False
        self.stopped = False
        self.start_args: Dict[str, Any] = {}
        self.navigation_error: Optional[str] = None
        self.failing_selectors: Set[str] = set()
        self.broken_queries: Set[str] = set()
        self.links: Set[str] = set()
        self.scroll_height = 2000
        self.scrolls: List[int] = []
        self.on_scroll: Optional[Callable[["FakeEngine", int], None]] = None
        self.on_load: Optional[Callable[["FakeEngine"], None]] = None
        self.scanned_forms: List[Dict[str, Any]] = []
        self.clickables: List[Dict[str, Any]] = []
        self.screenshots: List[str] = []
        self.extra_pages = 0

    # scheduling

    def at(self, delay_ms: int, fn: Callable[[], None]) -> None:
        self._seq += 1
        self._scheduled.append((self.clock.now + delay_ms, self._seq, fn))
        self._scheduled.sort(key=lambda item: (item[0], item[1]))

    def schedule_request(self, delay_ms: int, url: str, method: str = "POST", body: Optional[str] = None) -> None:
        self.at(delay_ms, lambda: self.emit_request(url, method, body))

    def emit_request(self, url: str, method: str = "POST", body: Optional[str] = None) -> None:
        for callback in self.callbacks:
            callback(url, method, body)

    def wait(self, ms: int) -> None:
        self.calls.append(("wait", ms))
        target = self.clock.now + max(ms, 0)
        while self._scheduled and self._scheduled[0][0] <= target:
            when, _, fn = self._scheduled.pop(0)
            self.clock.now = max(self.clock.now, when)
            fn()
        self.clock.now = target

    # lifecycle

    def start(self, headless=True, viewport=None, user_agent=None) -> None:
        self.started = True
        self.start_args = {"headless": headless, "viewport": viewport, "user_agent": user_agent}

    def stop(self) -> None:
        self.stopped = True

    def goto(self, url, wait_until="domcontentloaded", timeout_ms=30000) -> None:
        self.calls.append(("goto", url))
        if self.navigation_error:
            raise NavigationError(self.navigation_error)
        self.url = url
        self.page.load(self)
        if self.on_load:
            self.on_load(self)

    def reload(self, wait_until="domcontentloaded") -> None:
        self.calls.append(("reload",))
        self.page.reset(self)

    def current_url(self) -> str:
        return self.url

    def on_request(self, callback) -> None:
        self.callbacks.append(callback)

    # interactions

    def _guard(self, selector: str, step: str) -> None:
        if selector in self.failing_selectors:
            raise InteractionError("element is not interactable", selector=selector, step=step)

    def _guard_query(self, selector: str, step: str) -> None:
        if selector in self.broken_queries:
            raise InteractionError("Execution context was destroyed", selector=selector, step=step)

    def click(self, selector, modifiers=None, timeout_ms=5000) -> None:
        self.calls.append(("click", selector, tuple(modifiers or ())))
        self._guard(selector, "click")
        self.page.click(self, selector)

    def type(self, selector, value, clear=True) -> None:
        self.fill(selector, value)

    def fill(self, selector, value) -> None:
        self.calls.append(("fill", selector, value))
        self._guard(selector, "fill")
        self.page.set_value(self, selector, value, "fill")

    def check(self, selector) -> None:
        self.calls.append(("check", selector))
        self._guard(selector, "check")
        self.page.set_value(self, selector, True, "check")

    def uncheck(self, selector) -> None:
        self.calls.append(("uncheck", selector))
        self._guard(selector, "uncheck")
        self.page.set_value(self, selector, False, "uncheck")

    def select_option(self, selector, value) -> None:
        self.calls.append(("select", selector, value))
        self._guard(selector, "select")
        self.page.set_value(self, selector, value, "select")

    def focus(self, selector) -> None:
        self.calls.append(("focus", selector))

    def press(self, key) -> None:
        self.calls.append(("press", key))
        if key == "Tab":
            self.page.blur(self)

    # queries

    def count(self, selector) -> int:
        self._guard_query(selector, "count")
        if " >> nth=" in selector:
            selector = selector.split(" >> nth=")[0]
        return self.page.count(selector)

    def is_visible(self, selector) -> bool:
        self._guard_query(selector, "is_visible")
        return self.page.is_visible(selector)

    def has_text(self, text) -> bool:
        return self.page.has_text(text)

    def evaluate(self, script, arg=None):
        self.calls.append(("evaluate", arg))
        if "scrollHeight" in script:
            return self.scroll_height
        if "scrollTo" in script:
            y = 0 if arg is None else arg
            self.scrolls.append(y)
            if self.on_scroll and arg is not None:
                self.on_scroll(self, y)
            return None
        if "closest('a[href]')" in script:
            return arg[0] in self.links
        if "querySelectorAll('form')" in script:
            return self.scanned_forms
        if "excluded:" in script:
            return self.clickables
        return 0

    def close_extra_pages(self) -> int:
        closed, self.extra_pages = self.extra_pages, 0
        return closed

    def screenshot(self, path) -> None:
        self.screenshots.append(path)

    # helpers

    def interactions(self, kind: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == kind]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(clock):
    return FakeEngine(clock)


@pytest.fixture
def signup_page():
    return SignupPage()


@pytest.fixture
def signup_engine(clock, signup_page):
    return FakeEngine(clock, signup_page)


@pytest.fixture
def fast_settings():
    """Default settings with the long human-pacing delays shortened."""
    return Settings().merged({
        "page_load_timeout_ms": 100,
        "network_wait_ms": 100,
        "form": {
            "field_fill_delay_ms": 100,
            "blur_delay_ms": 50,
            "submit_delay_ms": 100,
            "error_check_delay_ms": 1000,
            "success_check_delay_ms": 1000,
            "event_delay_ms": 1500,
            "refresh_settle_ms": 100,
        },
        "click": {"event_delay_ms": 1500, "wait_after_click_ms": 50},
        "scroll": {"event_delay_ms": 1500},
    })


@pytest.fixture
def neffy_form():
    return get_site("neffy").forms()["neffy_consumer_signup"]


@pytest.fixture
def make_correlator():
    """Build an observer + correlator pair attached to a fake engine."""
    from ga4check.automation.correlator import Correlator, EventClassifier
    from ga4check.automation.network import EventParameterDictionary, NetworkObserver

    def build(engine: FakeEngine, settings: Optional[Settings] = None, min_event_delay_ms: int = 0):
        settings = settings or Settings()
        observer = NetworkObserver(
            settings.ga4_urls, EventParameterDictionary(settings.event_params), clock=engine.clock
        )
        observer.attach(engine)
        return Correlator(
            observer,
            EventClassifier(settings.click.exclude_keywords, settings.scroll.event_keywords),
            wait=engine.wait,
            clock=engine.clock,
            min_event_delay_ms=min_event_delay_ms,
            poll_interval_ms=settings.poll_interval_ms,
        )
    return build
