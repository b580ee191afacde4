"""
Form testing: fill fields per scenario, submit, and check the resulting
success or validation-error state.

Per scenario the tester moves through::

    IDLE -> FIELDS_FILLED -> SUBMITTED -> SUCCESS_OBSERVED | ERRORS_OBSERVED | TIMEOUT

Fields with a ``conditional`` clause are only touched once the field they
depend on has been set to the ``show_when`` value during the same scenario.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..config.models import FormConfig, FormFieldConfig, SubmissionScenario
from ..config.settings import Settings
from .actions import ActionRunner
from .correlator import Correlator
from .errors import ConfigurationError, InteractionError, NavigationError
from .polling import poll_until
from .types import CheckResult, EventCategory, FormState, ScenarioResult, Verdict, now_ms

logger = logging.getLogger("ga4check")

# returned by _resolve_value when a field is left untouched
_UNTOUCHED = object()


def _quote(value: Any) -> str:
    return str(value).replace("\\", "\\\\").replace('"', '\\"')


class FormTester:
    def __init__(
        self,
        engine,
        config: FormConfig,
        settings: Settings,
        correlator: Optional[Correlator] = None,
        after_refresh_actions: Optional[List[Any]] = None,
        clock=now_ms,
    ):
        self.engine = engine
        self.config = config
        self.settings = settings
        self.timing = settings.merged({"form": config.timing}).form if config.timing else settings.form
        self.correlator = correlator
        self.after_refresh_actions = list(after_refresh_actions or [])
        self.clock = clock
        self._values: Dict[str, Any] = {}
        self.results: List[CheckResult] = []

    @property
    def track_events(self) -> bool:
        return self.correlator is not None and self.timing.track_events

    def _expected_params(self) -> Optional[Dict[str, str]]:
        if self.config.form_code:
            return {"formCode": self.config.form_code}
        return None

    # ------------------------------------------------------------------ fields

    def is_conditional_field_visible(self, field: FormFieldConfig) -> bool:
        if field.conditional is None:
            return True
        return field.conditional.satisfied_by(self._values.get(field.conditional.depends_on))

    def set_field(self, field: FormFieldConfig, value: Any) -> None:
        """Apply ``value`` to ``field`` with the interaction its type calls for."""
        if field.type in ("text", "email", "tel"):
            self.engine.focus(field.selector)
            self.engine.fill(field.selector, "" if value is None else str(value))
        elif field.type == "select":
            self.engine.focus(field.selector)
            self.engine.select_option(field.selector, "" if value is None else str(value))
        elif field.type == "radio":
            if value is not None:
                self.engine.check(f'{field.selector}[value="{_quote(value)}"]')
        elif field.type == "checkbox":
            if isinstance(value, bool):
                if value:
                    self.engine.check(field.selector)
                else:
                    self.engine.uncheck(field.selector)
            else:
                selected = list(value or [])
                for option in selected:
                    self.engine.check(f'{field.selector}[value="{_quote(option)}"]')
                for option in field.options:
                    if option not in selected:
                        self.engine.uncheck(f'{field.selector}[value="{_quote(option)}"]')
        else:
            raise ConfigurationError(f"Unsupported field type: {field.type}")

    def blur(self) -> None:
        self.engine.press("Tab")
        self.engine.wait(self.timing.blur_delay_ms)

    def _resolve_value(self, field: FormFieldConfig, scenario: SubmissionScenario) -> Any:
        if field.name in scenario.overrides:
            return scenario.overrides[field.name]
        if scenario.bucket and field.has_value(scenario.bucket):
            value = field.value_for(scenario.bucket)
        elif scenario.fallback_bucket and field.has_value(scenario.fallback_bucket):
            value = field.value_for(scenario.fallback_bucket)
        else:
            return _UNTOUCHED
        # None means "leave unselected"
        return _UNTOUCHED if value is None else value

    def fill_fields(self, scenario: SubmissionScenario) -> Tuple[List[str], List[str]]:
        """Fill fields in declaration order; returns ``(filled, skipped)`` field names."""
        filled: List[str] = []
        skipped: List[str] = []
        for name, field in self.config.fields.items():
            if not self.is_conditional_field_visible(field):
                logger.info(f"[forms] ⏭ skipping conditional field '{name}' (hidden)")
                skipped.append(name)
                continue
            value = self._resolve_value(field, scenario)
            if value is _UNTOUCHED:
                continue
            self.set_field(field, value)
            self._values[name] = value
            self.blur()
            self.engine.wait(self.timing.field_fill_delay_ms)
            filled.append(name)
            logger.debug(f"[forms] filled '{name}' with {value!r}")
        return filled, skipped

    # ----------------------------------------------------------------- outcome

    def known_error_selectors(self, scenario: Optional[SubmissionScenario] = None) -> List[str]:
        selectors = self.config.error_selectors()
        for name in self.config.fields:
            sel = f"#error-{name}"
            if sel not in selectors:
                selectors.append(sel)
        if scenario is not None:
            for sel in scenario.expected_errors:
                if sel not in selectors:
                    selectors.append(sel)
        return selectors

    def visible_errors(self, selectors: List[str]) -> List[str]:
        return [sel for sel in selectors if self.engine.is_visible(sel)]

    def success_visible(self) -> bool:
        if any(self.engine.is_visible(sel) for sel in self.config.success_selectors):
            return True
        return any(self.engine.has_text(text) for text in self.config.success_texts)

    def _poll(self, probe, timeout_ms: int):
        return poll_until(probe, timeout_ms, self.engine.wait, self.clock, self.settings.poll_interval_ms)

    def observe_outcome(self, scenario: SubmissionScenario, result: ScenarioResult) -> None:
        known = self.known_error_selectors(scenario)
        expected = list(scenario.expected_errors)

        if scenario.expect_success:
            if self.config.has_success_indicators:
                def probe():
                    if self.success_visible():
                        return FormState.SUCCESS_OBSERVED
                    if self.visible_errors(known):
                        return FormState.ERRORS_OBSERVED
                    return None
                state = self._poll(probe, self.timing.success_check_delay_ms) or FormState.TIMEOUT
            else:
                self.engine.wait(self.timing.error_check_delay_ms)
                state = FormState.ERRORS_OBSERVED if self.visible_errors(known) else FormState.SUCCESS_OBSERVED
                result.inferred = state == FormState.SUCCESS_OBSERVED
        else:
            def probe():
                if all(self.engine.is_visible(sel) for sel in expected):
                    return FormState.ERRORS_OBSERVED
                if self.success_visible():
                    return FormState.SUCCESS_OBSERVED
                return None
            state = self._poll(probe, self.timing.error_check_delay_ms)
            if state is None:
                partial = self.visible_errors(expected)
                state = FormState.ERRORS_OBSERVED if partial else FormState.TIMEOUT

        result.state = state
        result.observed_errors = self.visible_errors(known)
        result.missing_errors = [sel for sel in expected if sel not in result.observed_errors]

        if scenario.expect_success:
            if state == FormState.SUCCESS_OBSERVED:
                result.verdict = Verdict.PASS
                result.message = "success indicator observed" if not result.inferred else "no errors shown (inferred success)"
            elif state == FormState.ERRORS_OBSERVED:
                result.verdict = Verdict.UNEXPECTED_OUTCOME
                result.message = f"errors shown after valid submission: {', '.join(result.observed_errors)}"
            else:
                result.verdict = Verdict.TIMEOUT
                result.message = f"no success indicator within {self.timing.success_check_delay_ms}ms"
        else:
            if state == FormState.ERRORS_OBSERVED and not result.missing_errors:
                result.verdict = Verdict.PASS
                result.message = f"all {len(expected)} expected errors shown"
            elif state == FormState.ERRORS_OBSERVED:
                result.verdict = Verdict.MISSING_ERRORS
                result.message = f"missing errors: {', '.join(result.missing_errors)}"
            elif state == FormState.SUCCESS_OBSERVED:
                result.verdict = Verdict.UNEXPECTED_OUTCOME
                result.message = "form reported success when errors were expected"
            else:
                result.verdict = Verdict.TIMEOUT
                result.message = f"no expected errors within {self.timing.error_check_delay_ms}ms"

    # --------------------------------------------------------------- scenarios

    def scenarios(self) -> List[SubmissionScenario]:
        flags = self.timing.scenarios
        scenarios = [s for s in self.config.builtin_scenarios() if flags.get(s.name, True)]
        scenarios.extend(s for s in self.config.scenarios.values() if flags.get(s.name, True))
        return scenarios

    def run_scenario(self, scenario: SubmissionScenario) -> ScenarioResult:
        """Fill, submit and observe one scenario on the current page."""
        start = self.clock()
        result = ScenarioResult(
            form=self.config.name,
            scenario=scenario.name,
            expected_errors=list(scenario.expected_errors),
            auto_detected=self.config.auto_detected,
        )
        if not scenario.expect_success and not scenario.expected_errors:
            result.verdict = Verdict.SKIPPED
            result.message = "no expected errors configured"
            return result

        logger.info(f"[forms] 🧪 {self.config.name}: {scenario.name}")
        self._values = {}
        result.filled_fields, result.skipped_fields = self.fill_fields(scenario)
        result.state = FormState.FIELDS_FILLED

        self.engine.wait(self.timing.submit_delay_ms)
        kind = EventCategory.FORM_SUBMIT if scenario.expect_success else EventCategory.FORM_ERROR
        if self.track_events:
            self.correlator.record_triggering_action(kind, scenario.name)
        self.engine.click(self.config.submit_button_selector, timeout_ms=self.timing.timeout_ms)
        result.state = FormState.SUBMITTED

        self.observe_outcome(scenario, result)
        result.elapsed_ms = self.clock() - start
        logger.info(f"[forms] {scenario.name}: {result.state.value} ({result.verdict.value}) {result.message}")

        if self.track_events:
            correlation = self.correlator.await_correlated_event(
                kind, scenario.name, timeout_ms=self.timing.event_delay_ms, expected=self._expected_params()
            )
            self.results.append(CheckResult.from_correlation(
                f"form:{self.config.name}/{scenario.name}:{kind.value}", correlation
            ))
        return result

    def test_individual_fields(self) -> List[CheckResult]:
        """Fill each visible field with its valid value, blur, and check analytics and error state."""
        results: List[CheckResult] = []
        self._values = {}
        for name, field in self.config.fields.items():
            if not self.is_conditional_field_visible(field):
                logger.info(f"[forms] ⏭ skipping conditional field '{name}' (hidden)")
                continue
            value = field.value_for("valid", None)
            if value is None:
                continue
            if self.track_events:
                self.correlator.record_triggering_action(EventCategory.FORM_FIELD, name)
            self.set_field(field, value)
            self._values[name] = value
            self.blur()
            if self.track_events:
                correlation = self.correlator.await_correlated_event(
                    EventCategory.FORM_FIELD, name,
                    timeout_ms=self.timing.event_delay_ms, expected=self._expected_params(),
                )
                results.append(CheckResult.from_correlation(
                    f"form:{self.config.name}/field:{name}:form_field", correlation
                ))
            else:
                self.engine.wait(self.timing.field_fill_delay_ms)
            error_selector = f"#error-{name}"
            if self.engine.is_visible(error_selector):
                results.append(CheckResult(
                    name=f"form:{self.config.name}/field:{name}",
                    verdict=Verdict.UNEXPECTED_OUTCOME,
                    message=f"{error_selector} shown after valid value {value!r}",
                    category="form",
                ))
            else:
                results.append(CheckResult(
                    name=f"form:{self.config.name}/field:{name}",
                    verdict=Verdict.PASS,
                    message="no error after valid value",
                    category="form",
                ))
        return results

    def refresh_for_new_phase(self, phase: str) -> None:
        logger.info(f"[forms] 🔄 refreshing page for {phase}")
        self.engine.reload()
        self.engine.wait(self.timing.refresh_settle_ms)
        if self.after_refresh_actions:
            ActionRunner(self.engine, self.settings).run(self.after_refresh_actions, label="after-refresh actions")
        if self.engine.count(self.config.form_selector) == 0:
            raise InteractionError("Form not found after refresh", selector=self.config.form_selector, step=phase)

    def _error_result(self, scenario: str, verdict: Verdict, error: Exception) -> CheckResult:
        return ScenarioResult(
            form=self.config.name,
            scenario=scenario,
            verdict=verdict,
            message=str(error),
            auto_detected=self.config.auto_detected,
        ).to_check()

    def run_all(self) -> List[CheckResult]:
        """Run the individual-field phase and every enabled submission scenario."""
        results: List[CheckResult] = []
        if self.config.auto_detected:
            logger.warning(f"[forms] ⚠ {self.config.name} was auto-detected; results are best-effort")

        if self.timing.scenarios.get("individual_fields", True) and self.config.fields:
            try:
                results.extend(self.test_individual_fields())
            except InteractionError as e:
                logger.error(f"[forms] individual field testing aborted: {e}")
                results.append(self._error_result("individual_fields", Verdict.INTERACTION_ERROR, e))
            if self.correlator is not None:
                self.correlator.reset()

        for scenario in self.scenarios():
            if self.config.auto_detected and not scenario.expect_success:
                results.append(ScenarioResult(
                    form=self.config.name,
                    scenario=scenario.name,
                    verdict=Verdict.SKIPPED,
                    message="auto-detected form has no expected errors",
                    auto_detected=True,
                ).to_check())
                continue
            self.results = []
            try:
                self.refresh_for_new_phase(scenario.name)
                outcome = self.run_scenario(scenario)
                results.append(outcome.to_check())
            except (InteractionError, NavigationError) as e:
                logger.error(f"[forms] {scenario.name} aborted: {e}")
                results.append(self._error_result(scenario.name, Verdict.INTERACTION_ERROR, e))
            except ConfigurationError as e:
                logger.error(f"[forms] {scenario.name} skipped: {e}")
                results.append(self._error_result(scenario.name, Verdict.CONFIG_ERROR, e))
            finally:
                results.extend(self.results)
                if self.correlator is not None:
                    self.correlator.reset()
        return results
