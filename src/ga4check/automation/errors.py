class Ga4CheckError(Exception):
    """Base exception for ga4check errors."""
    pass


class ConfigurationError(Ga4CheckError):
    """Raised when a form or step descriptor is missing or malformed."""
    pass


class InteractionError(Ga4CheckError):
    """Raised when a required page interaction cannot be performed."""

    def __init__(self, message: str, selector: str = "", step: str = ""):
        super().__init__(message)
        self.selector = selector
        self.step = step

    def __str__(self) -> str:
        context = []
        if self.step:
            context.append(f"step={self.step}")
        if self.selector:
            context.append(f"selector={self.selector}")
        base = super().__str__()
        return f"{base} ({', '.join(context)})" if context else base


class NavigationError(Ga4CheckError):
    """Raised when the target page cannot be loaded. Aborts the run."""
    pass


class CorrelationError(Ga4CheckError):
    """Raised when an event is awaited without a pending triggering action."""
    pass
