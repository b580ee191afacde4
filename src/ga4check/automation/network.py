"""
Capture of GA4 collect requests.

The observer subscribes to the engine's request stream, drops anything that is
not an analytics hit and decodes the rest into :class:`CapturedEvent` records
using an :class:`EventParameterDictionary`.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import parse_qsl, urlsplit

from .types import CapturedEvent, now_ms

logger = logging.getLogger("ga4check")


class EventParameterDictionary:
    """Maps canonical parameter names to ordered lists of raw query-parameter aliases.

    When several aliases of one canonical name are present in the same hit,
    the first alias in list order wins.
    """

    def __init__(self, aliases: Dict[str, List[str]]):
        self._aliases = {name: list(keys) for name, keys in aliases.items()}

    @property
    def names(self) -> List[str]:
        return list(self._aliases)

    def aliases(self, name: str) -> List[str]:
        return list(self._aliases.get(name, []))

    def lookup(self, flat: Dict[str, str], name: str) -> Tuple[Optional[str], Optional[str]]:
        """Return ``(value, alias)`` for the first alias of ``name`` present in ``flat``."""
        for alias in self._aliases.get(name, []):
            if alias in flat:
                return flat[alias], alias
        return None, None

    def resolve(self, flat: Dict[str, str]) -> Dict[str, str]:
        resolved: Dict[str, str] = {}
        for name in self._aliases:
            value, _ = self.lookup(flat, name)
            if value is not None:
                resolved[name] = value
        return resolved


def parse_flat(query: str) -> Dict[str, str]:
    """Parse a query string into a flat mapping; the first occurrence of a key wins."""
    flat: Dict[str, str] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        flat.setdefault(key, value)
    return flat


class NetworkObserver:
    def __init__(
        self,
        ga4_urls: Iterable[str],
        parameters: EventParameterDictionary,
        clock: Callable[[], int] = now_ms,
    ):
        self.ga4_urls = list(ga4_urls)
        self.parameters = parameters
        self.clock = clock
        self._events: List[CapturedEvent] = []
        self._attached = False

    def attach(self, engine) -> None:
        if self._attached:
            return
        engine.on_request(self.handle_request)
        self._attached = True
        logger.debug(f"[network] observing {len(self.ga4_urls)} GA4 endpoint patterns")

    def is_analytics_url(self, url: str) -> bool:
        return any(pattern in url for pattern in self.ga4_urls)

    def handle_request(self, url: str, method: str, post_data: Optional[str] = None) -> List[CapturedEvent]:
        if not self.is_analytics_url(url):
            return []
        timestamp = self.clock()
        captured = [
            CapturedEvent(
                timestamp=timestamp,
                url=url,
                method=method,
                params=self.parameters.resolve(flat),
                raw=flat,
                source=source,
            )
            for flat, source in self._decode(url, post_data)
        ]
        self._events.extend(captured)
        for event in captured:
            logger.info(
                f"[network] 📡 {event.name or 'unknown'}"
                f" category={event.get('eventCategory') or '-'}"
                f" label={event.get('eventLabel') or '-'}"
            )
        return captured

    def _decode(self, url: str, post_data: Optional[str]) -> List[Tuple[Dict[str, str], str]]:
        base = parse_flat(urlsplit(url).query)
        lines = [line.strip() for line in (post_data or "").splitlines() if line.strip()]
        # batched hits: one event per body line, sharing the URL parameters
        hits = [parse_flat(line) for line in lines]
        hits = [hit for hit in hits if "en" in hit]
        if not hits:
            return [(base, "url")]
        decoded = []
        for hit in hits:
            flat = dict(base)
            flat.update(hit)
            decoded.append((flat, "body"))
        return decoded

    @property
    def events(self) -> List[CapturedEvent]:
        return list(self._events)

    def events_since(self, timestamp: int) -> List[CapturedEvent]:
        return [e for e in self._events if e.timestamp >= timestamp]

    def clear(self) -> None:
        self._events = []
