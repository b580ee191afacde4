"""Browser automation and GA4 event capture.

This package provides the engine abstraction (Playwright), the network
observer that decodes GA4 hits, the correlator that pairs them with user
actions, and the testers for forms, scrolls and clicks.
"""

from .errors import Ga4CheckError, ConfigurationError, InteractionError, NavigationError, CorrelationError
from .types import CapturedEvent, CheckResult, EventCategory, Verdict
from .engine import AutomationEngine

__all__ = [
    'AutomationEngine',
    'CapturedEvent',
    'CheckResult',
    'ConfigurationError',
    'CorrelationError',
    'EventCategory',
    'Ga4CheckError',
    'InteractionError',
    'NavigationError',
    'Verdict',
]
