"""
Best-effort dismissal of cookie consent banners (Pantheon, OneTrust, generic).
"""
from __future__ import annotations

import logging
from typing import List, Optional

from ..config.settings import ConsentFramework
from .errors import InteractionError

logger = logging.getLogger("ga4check")


def _js_remove_script() -> str:
    return (
        "(selectors) => {"
        " let removed = 0;"
        " for (const sel of selectors) {"
        "   for (const el of Array.from(document.querySelectorAll(sel))) { el.remove(); removed++; }"
        " }"
        " return removed;"
        "}"
    )


def _try_click(engine, selector: str) -> bool:
    if engine.count(selector) == 0:
        return False
    try:
        engine.click(selector)
        logger.debug(f"[consent] clicked {selector}")
        return True
    except InteractionError:
        logger.debug(f"[consent] could not click {selector}")
        return False


def dismiss_framework(engine, framework: ConsentFramework, settle_ms: int = 0) -> bool:
    for selector in framework.accept_selectors:
        if _try_click(engine, selector):
            logger.info(f"[consent] ✓ accepted {framework.name} banner")
            engine.wait(settle_ms)
            return True
    if framework.fallback_selectors and engine.count(framework.fallback_selectors[0]) > 0:
        clicked = [_try_click(engine, sel) for sel in framework.fallback_selectors]
        if all(clicked):
            logger.info(f"[consent] ✓ saved {framework.name} preferences")
            engine.wait(settle_ms)
            return True
        logger.info(f"[consent] {framework.name} settings flow incomplete")
    return False


def dismiss_consent(engine, frameworks: List[ConsentFramework], settle_ms: int = 0) -> List[str]:
    """Dismiss every consent framework present on the page; returns their names."""
    handled = [fw.name for fw in frameworks if dismiss_framework(engine, fw, settle_ms)]
    if not handled:
        logger.info("[consent] no cookie consent banner found")
    return handled


def remove_cookie_banner(engine, frameworks: List[ConsentFramework], settle_ms: int = 0) -> Optional[str]:
    """Dismiss the first framework found; otherwise strip known banner elements from the DOM."""
    for framework in frameworks:
        if dismiss_framework(engine, framework, settle_ms):
            return framework.name
    selectors = [sel for fw in frameworks for sel in fw.banner_selectors]
    removed = engine.evaluate(_js_remove_script(), selectors) if selectors else 0
    if removed:
        logger.info(f"[consent] removed {removed} banner element(s)")
    else:
        logger.info("[consent] no cookie banner present")
    return None
