"""
Declarative page actions executed by site hooks.

A step list is a sequence of :class:`Step` values. Loose descriptors such as
``"wait"`` or ``{"action": "click", "selector": "..."}`` are accepted through
:func:`parse_step`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Union

from .errors import ConfigurationError, Ga4CheckError, InteractionError
from .consent import remove_cookie_banner

logger = logging.getLogger("ga4check")


@dataclass(frozen=True)
class WaitStep:
    ms: int = 1000


@dataclass(frozen=True)
class ClickStep:
    selector: str


@dataclass(frozen=True)
class TypeStep:
    selector: str
    value: str


@dataclass(frozen=True)
class CustomStep:
    function: Callable[[Any], None]
    description: str = "custom function"


@dataclass(frozen=True)
class RemoveCookieBannerStep:
    pass


Step = Union[WaitStep, ClickStep, TypeStep, CustomStep, RemoveCookieBannerStep]
STEP_TYPES = (WaitStep, ClickStep, TypeStep, CustomStep, RemoveCookieBannerStep)


def parse_step(descriptor: Any) -> Step:
    if isinstance(descriptor, STEP_TYPES):
        return descriptor
    if descriptor == "wait":
        return WaitStep()
    if not isinstance(descriptor, dict) or "action" not in descriptor:
        raise ConfigurationError(f"Invalid action descriptor: {descriptor!r}")
    kind = descriptor["action"]
    try:
        if kind == "wait":
            return WaitStep(ms=int(descriptor.get("time", 1000)))
        if kind == "click":
            return ClickStep(selector=descriptor["selector"])
        if kind == "type":
            return TypeStep(selector=descriptor["selector"], value=descriptor["value"])
        if kind == "custom":
            function = descriptor["function"]
            if not callable(function):
                raise ConfigurationError("Custom action 'function' is not callable")
            return CustomStep(function=function, description=descriptor.get("description", "custom function"))
        if kind in ("removeCookieBanner", "remove_cookie_banner"):
            return RemoveCookieBannerStep()
    except KeyError as e:
        raise ConfigurationError(f"Action '{kind}' is missing {e}")
    raise ConfigurationError(f"Unknown action type: {kind}")


def parse_steps(descriptors: Iterable[Any]) -> List[Step]:
    return [parse_step(d) for d in descriptors]


def describe_step(step: Step) -> str:
    if isinstance(step, WaitStep):
        return f"wait {step.ms}ms"
    if isinstance(step, ClickStep):
        return f"click {step.selector}"
    if isinstance(step, TypeStep):
        return f"type into {step.selector}"
    if isinstance(step, CustomStep):
        return step.description
    return "remove cookie banner"


class ActionRunner:
    def __init__(self, engine, settings):
        self.engine = engine
        self.settings = settings

    def run(self, steps: Iterable[Any], label: str = "actions") -> int:
        """Run steps in order; returns the number executed.

        A missing click target is tolerated. Any other failure aborts the
        remaining steps with an :class:`InteractionError`.
        """
        parsed = parse_steps(steps)
        if parsed:
            logger.info(f"[actions] running {len(parsed)} {label}")
        for index, step in enumerate(parsed, start=1):
            logger.debug(f"[actions] {index}/{len(parsed)}: {describe_step(step)}")
            try:
                self._execute(step)
            except InteractionError as e:
                if not e.step:
                    e.step = f"{label}[{index}]"
                raise
            except Ga4CheckError:
                raise
            except Exception as e:
                selector = getattr(step, "selector", "")
                raise InteractionError(
                    f"{describe_step(step)} failed: {e}", selector=selector, step=f"{label}[{index}]"
                ) from e
        return len(parsed)

    def _execute(self, step: Step) -> None:
        if isinstance(step, WaitStep):
            self.engine.wait(step.ms)
        elif isinstance(step, ClickStep):
            if self.engine.count(step.selector) == 0:
                logger.warning(f"[actions] element not found, skipping click: {step.selector}")
                return
            self.engine.click(step.selector, timeout_ms=self.settings.click.timeout_ms)
        elif isinstance(step, TypeStep):
            self.engine.fill(step.selector, step.value)
        elif isinstance(step, CustomStep):
            step.function(self.engine)
        elif isinstance(step, RemoveCookieBannerStep):
            remove_cookie_banner(self.engine, self.settings.consent_frameworks, self.settings.network_wait_ms)
