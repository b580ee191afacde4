from typing import Protocol, Optional, Dict, Any, Callable, List


RequestCallback = Callable[[str, str, Optional[str]], None]


class AutomationEngine(Protocol):
    def start(self, headless: bool = True, viewport: Optional[Dict[str, int]] = None, user_agent: Optional[str] = None) -> None:
        ...

    def stop(self) -> None:
        ...

    def goto(self, url: str, wait_until: str = "domcontentloaded", timeout_ms: int = 30000) -> None:
        ...

    def reload(self, wait_until: str = "domcontentloaded") -> None:
        ...

    def current_url(self) -> str:
        ...

    def on_request(self, callback: RequestCallback) -> None:
        ...

    def click(self, selector: str, modifiers: Optional[List[str]] = None, timeout_ms: int = 5000) -> None:
        ...

    def type(self, selector: str, value: str, clear: bool = True) -> None:
        ...

    def fill(self, selector: str, value: str) -> None:
        ...

    def check(self, selector: str) -> None:
        ...

    def uncheck(self, selector: str) -> None:
        ...

    def select_option(self, selector: str, value: str) -> None:
        ...

    def focus(self, selector: str) -> None:
        ...

    def press(self, key: str) -> None:
        ...

    def count(self, selector: str) -> int:
        ...

    def is_visible(self, selector: str) -> bool:
        ...

    def has_text(self, text: str) -> bool:
        ...

    def wait(self, ms: int) -> None:
        ...

    def evaluate(self, script: str, arg: Optional[Any] = None) -> Any:
        ...

    def close_extra_pages(self) -> int:
        ...

    def screenshot(self, path: str) -> None:
        ...
