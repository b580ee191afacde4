"""ga4check: verify that user interactions on a live page fire the expected GA4 events."""

__version__ = "0.1.0"

# Avoid importing the browser stack at top-level
__all__ = ["Settings", "TrackingSession", "PlaywrightEngine"]


def __getattr__(name):
    if name == "Settings":
        from .config.settings import Settings
        return Settings
    if name == "TrackingSession":
        from .automation.runner import TrackingSession
        return TrackingSession
    if name == "PlaywrightEngine":
        from .automation.playwright_engine import PlaywrightEngine
        return PlaywrightEngine
    raise AttributeError(name)
