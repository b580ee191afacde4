import logging
from typing import Optional, Dict, Any, List

from playwright.sync_api import sync_playwright, Page, Browser, BrowserContext, Request
from playwright.sync_api import Error as PlaywrightError

from .engine import RequestCallback
from .errors import InteractionError, NavigationError

logger = logging.getLogger("ga4check")


class PlaywrightEngine:
    def __init__(self):
        self._pw = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    def __enter__(self) -> "PlaywrightEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    @property
    def page(self) -> Page:
        assert self._page is not None
        return self._page

    def start(self, headless: bool = True, viewport: Optional[Dict[str, int]] = None, user_agent: Optional[str] = None) -> None:
        self._pw = sync_playwright().start()
        try:
            self._browser = self._pw.chromium.launch(headless=headless)
        except PlaywrightError as e:
            self.stop()
            raise NavigationError(f"Browser launch failed: {e}")
        context_args: Dict[str, Any] = {}
        if viewport:
            context_args["viewport"] = viewport
        if user_agent:
            context_args["user_agent"] = user_agent
        self._context = self._browser.new_context(**context_args)
        self._context.clear_cookies()
        self._page = self._context.new_page()
        logger.debug(f"[engine] chromium started headless={headless} viewport={viewport}")

    def stop(self) -> None:
        try:
            if self._context:
                self._context.close()
            if self._browser:
                self._browser.close()
        finally:
            if self._pw:
                self._pw.stop()
            self._page = None
            self._context = None
            self._browser = None
            self._pw = None

    def goto(self, url: str, wait_until: str = "domcontentloaded", timeout_ms: int = 30000) -> None:
        assert self._page is not None
        try:
            self._page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except PlaywrightError as e:
            raise NavigationError(f"Failed to load {url}: {e}")

    def reload(self, wait_until: str = "domcontentloaded") -> None:
        assert self._page is not None
        try:
            self._page.reload(wait_until=wait_until)
        except PlaywrightError as e:
            raise NavigationError(f"Failed to reload {self._page.url}: {e}")

    def current_url(self) -> str:
        assert self._page is not None
        return self._page.url

    def on_request(self, callback: RequestCallback) -> None:
        assert self._page is not None

        def _handler(request: Request) -> None:
            try:
                post_data = request.post_data
            except (PlaywrightError, UnicodeDecodeError):
                # binary bodies are not analytics payloads
                post_data = None
            callback(request.url, request.method, post_data)

        self._page.on("request", _handler)

    def click(self, selector: str, modifiers: Optional[List[str]] = None, timeout_ms: int = 5000) -> None:
        assert self._page is not None
        try:
            self._page.locator(selector).first.click(modifiers=modifiers, timeout=timeout_ms)
        except PlaywrightError as e:
            raise InteractionError(f"Click failed: {e}", selector=selector, step="click")

    def type(self, selector: str, value: str, clear: bool = True) -> None:
        assert self._page is not None
        try:
            locator = self._page.locator(selector).first
            if clear:
                locator.fill("")
            locator.type(value)
        except PlaywrightError as e:
            raise InteractionError(f"Typing failed: {e}", selector=selector, step="type")

    def fill(self, selector: str, value: str) -> None:
        assert self._page is not None
        try:
            self._page.fill(selector, value)
        except PlaywrightError as e:
            raise InteractionError(f"Fill failed: {e}", selector=selector, step="fill")

    def check(self, selector: str) -> None:
        assert self._page is not None
        try:
            self._page.check(selector)
        except PlaywrightError as e:
            raise InteractionError(f"Check failed: {e}", selector=selector, step="check")

    def uncheck(self, selector: str) -> None:
        assert self._page is not None
        try:
            self._page.uncheck(selector)
        except PlaywrightError as e:
            raise InteractionError(f"Uncheck failed: {e}", selector=selector, step="uncheck")

    def select_option(self, selector: str, value: str) -> None:
        assert self._page is not None
        try:
            self._page.select_option(selector, value)
        except PlaywrightError as e:
            raise InteractionError(f"Select failed: {e}", selector=selector, step="select")

    def focus(self, selector: str) -> None:
        assert self._page is not None
        try:
            self._page.focus(selector)
        except PlaywrightError as e:
            raise InteractionError(f"Focus failed: {e}", selector=selector, step="focus")

    def press(self, key: str) -> None:
        assert self._page is not None
        try:
            self._page.keyboard.press(key)
        except PlaywrightError as e:
            raise InteractionError(f"Key press failed: {e}", step="press")

    def count(self, selector: str) -> int:
        assert self._page is not None
        try:
            return self._page.locator(selector).count()
        except PlaywrightError as e:
            raise InteractionError(f"Query failed: {e}", selector=selector, step="count")

    def is_visible(self, selector: str) -> bool:
        assert self._page is not None
        try:
            locator = self._page.locator(selector)
            for i in range(locator.count()):
                if locator.nth(i).is_visible():
                    return True
            return False
        except PlaywrightError as e:
            raise InteractionError(f"Visibility check failed: {e}", selector=selector, step="is_visible")

    def has_text(self, text: str) -> bool:
        assert self._page is not None
        try:
            return self._page.get_by_text(text).count() > 0
        except PlaywrightError as e:
            raise InteractionError(f"Text lookup failed: {e}", step="has_text")

    def wait(self, ms: int) -> None:
        assert self._page is not None
        try:
            # keeps Playwright's event loop turning so request callbacks fire
            self._page.wait_for_timeout(ms)
        except PlaywrightError as e:
            raise InteractionError(f"Wait interrupted: {e}", step="wait")

    def evaluate(self, script: str, arg: Optional[Any] = None) -> Any:
        assert self._page is not None
        try:
            return self._page.evaluate(script, arg)
        except PlaywrightError as e:
            raise InteractionError(f"Script evaluation failed: {e}", step="evaluate")

    def close_extra_pages(self) -> int:
        assert self._page is not None and self._context is not None
        closed = 0
        try:
            for page in list(self._context.pages):
                if page is not self._page:
                    page.close()
                    closed += 1
            self._page.bring_to_front()
        except PlaywrightError as e:
            raise InteractionError(f"Closing extra tabs failed: {e}", step="close_extra_pages")
        return closed

    def screenshot(self, path: str) -> None:
        assert self._page is not None
        try:
            self._page.screenshot(path=path, full_page=True)
        except PlaywrightError as e:
            raise InteractionError(f"Screenshot failed: {e}", step="screenshot")
