from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Optional, Dict, Any, List, Mapping
import time


def now_ms() -> int:
    return int(time.time() * 1000)


class EventCategory(str, Enum):
    CLICK = "click"
    SCROLL = "scroll"
    PAGE_VIEW = "page_view"
    EXIT_MODAL = "exit_modal"
    FORM_START = "form_start"
    FORM_FIELD = "form_field"
    FORM_SUBMIT = "form_submit"
    FORM_ERROR = "form_error"
    OTHER = "other"


class Verdict(str, Enum):
    PASS = "pass"
    MISMATCH = "mismatch"
    TIMEOUT = "timeout"
    MISSING_ERRORS = "missing_errors"
    UNEXPECTED_OUTCOME = "unexpected_outcome"
    INTERACTION_ERROR = "interaction_error"
    CONFIG_ERROR = "config_error"
    SKIPPED = "skipped"

    @property
    def ok(self) -> bool:
        return self in (Verdict.PASS, Verdict.SKIPPED)


class MatchMode(str, Enum):
    EXACT = "exact"
    IGNORE_CASE = "ignore_case"
    CONTAINS = "contains"


@dataclass(frozen=True)
class ExpectedParam:
    value: str
    mode: MatchMode = MatchMode.EXACT

    def matches(self, observed: Optional[str]) -> bool:
        if observed is None:
            return False
        if self.mode == MatchMode.IGNORE_CASE:
            return observed.lower() == self.value.lower()
        if self.mode == MatchMode.CONTAINS:
            return self.value in observed
        return observed == self.value


@dataclass(frozen=True)
class CapturedEvent:
    timestamp: int
    url: str
    method: str
    params: Mapping[str, str]
    raw: Mapping[str, str] = field(default_factory=dict)
    source: str = "url"

    def __post_init__(self):
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))
        object.__setattr__(self, "raw", MappingProxyType(dict(self.raw)))

    def get(self, name: str) -> Optional[str]:
        return self.params.get(name)

    @property
    def name(self) -> str:
        return self.params.get("eventName") or ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp,
            'url': self.url,
            'method': self.method,
            'params': dict(self.params),
            'source': self.source,
        }


@dataclass(frozen=True)
class TriggeringAction:
    timestamp: int
    kind: EventCategory
    descriptor: str = ""


@dataclass
class CorrelationResult:
    action: TriggeringAction
    verdict: Verdict
    event: Optional[CapturedEvent] = None
    mismatches: Dict[str, Dict[str, Optional[str]]] = field(default_factory=dict)
    elapsed_ms: Optional[int] = None

    @property
    def passed(self) -> bool:
        return self.verdict == Verdict.PASS

    def describe(self) -> str:
        if self.verdict == Verdict.TIMEOUT:
            return f"no {self.action.kind.value} event within window after {self.action.descriptor or 'action'}"
        if self.verdict == Verdict.MISMATCH:
            parts = [
                f"{name}: expected {diff['expected']!r}, observed {diff['observed']!r}"
                for name, diff in self.mismatches.items()
            ]
            return "; ".join(parts)
        return f"{self.event.name if self.event else ''} after {self.elapsed_ms}ms"


@dataclass
class CheckResult:
    """A single reportable outcome (a correlated event, a form scenario, ...)."""
    name: str
    verdict: Verdict
    message: str = ""
    category: str = ""
    elapsed_ms: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.verdict.ok

    @classmethod
    def from_correlation(cls, name: str, result: CorrelationResult, category: str = "analytics") -> 'CheckResult':
        details: Dict[str, Any] = {'action': result.action.descriptor}
        if result.event is not None:
            details['event'] = result.event.to_dict()
        if result.mismatches:
            details['mismatches'] = result.mismatches
        return cls(
            name=name,
            verdict=result.verdict,
            message=result.describe(),
            category=category,
            elapsed_ms=result.elapsed_ms,
            details=details,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'verdict': self.verdict.value,
            'message': self.message,
            'category': self.category,
            'elapsed_ms': self.elapsed_ms,
            'details': self.details,
        }


class FormState(str, Enum):
    IDLE = "idle"
    FIELDS_FILLED = "fields_filled"
    SUBMITTED = "submitted"
    SUCCESS_OBSERVED = "success_observed"
    ERRORS_OBSERVED = "errors_observed"
    TIMEOUT = "timeout"


@dataclass
class ScenarioResult:
    form: str
    scenario: str
    state: FormState = FormState.IDLE
    verdict: Verdict = Verdict.SKIPPED
    expected_errors: List[str] = field(default_factory=list)
    observed_errors: List[str] = field(default_factory=list)
    missing_errors: List[str] = field(default_factory=list)
    skipped_fields: List[str] = field(default_factory=list)
    filled_fields: List[str] = field(default_factory=list)
    message: str = ""
    elapsed_ms: Optional[int] = None
    auto_detected: bool = False
    inferred: bool = False

    def to_check(self) -> CheckResult:
        return CheckResult(
            name=f"form:{self.form}/{self.scenario}",
            verdict=self.verdict,
            message=self.message,
            category="form",
            elapsed_ms=self.elapsed_ms,
            details={
                'state': self.state.value,
                'expected_errors': self.expected_errors,
                'observed_errors': self.observed_errors,
                'missing_errors': self.missing_errors,
                'skipped_fields': self.skipped_fields,
                'filled_fields': self.filled_fields,
                'auto_detected': self.auto_detected,
                'inferred': self.inferred,
            },
        )
