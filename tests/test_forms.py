import pytest

from ga4check.automation.actions import ClickStep
from ga4check.automation.forms import FormTester
from ga4check.automation.types import FormState, Verdict
from ga4check.config.models import FormConfig, SubmissionScenario


def scenario(form: FormConfig, name: str) -> SubmissionScenario:
    return {s.name: s for s in form.builtin_scenarios()}.get(name) or form.scenarios[name]


@pytest.fixture
def tester(signup_engine, neffy_form, fast_settings, make_correlator):
    return FormTester(
        signup_engine, neffy_form, fast_settings,
        correlator=make_correlator(signup_engine, fast_settings),
        clock=signup_engine.clock,
    )


class TestScenarios:
    """Submission scenarios against the simulated signup form."""

    def test_valid_submission_succeeds(self, tester, neffy_form, signup_page):
        result = tester.run_scenario(scenario(neffy_form, "valid_submission"))
        assert result.state == FormState.SUCCESS_OBSERVED
        assert result.verdict == Verdict.PASS
        assert not result.inferred
        assert signup_page.values["email"] == "john.doe@example.com"
        assert signup_page.values["consent"] is True

    def test_valid_submission_fires_form_submit(self, tester, neffy_form):
        tester.run_scenario(scenario(neffy_form, "valid_submission"))
        [check] = tester.results
        assert check.verdict == Verdict.PASS
        assert check.name.endswith("valid_submission:form_submit")
        assert check.details["event"]["params"]["formCode"] == "form_neffy_consumer_signup"

    def test_wrong_form_code_is_a_mismatch(self, tester, neffy_form, signup_page):
        signup_page.form_code = "form_other"
        tester.run_scenario(scenario(neffy_form, "valid_submission"))
        [check] = tester.results
        assert check.verdict == Verdict.MISMATCH
        assert check.details["mismatches"]["formCode"]["observed"] == "form_other"

    def test_missing_analytics_event_times_out(self, tester, neffy_form, signup_page):
        signup_page.fire_events = False
        result = tester.run_scenario(scenario(neffy_form, "valid_submission"))
        assert result.verdict == Verdict.PASS
        assert tester.results[0].verdict == Verdict.TIMEOUT

    def test_empty_submission_shows_every_required_error(self, tester, neffy_form, signup_page):
        result = tester.run_scenario(scenario(neffy_form, "empty_submission"))
        assert result.verdict == Verdict.PASS
        assert result.state == FormState.ERRORS_OBSERVED
        expected = neffy_form.expected_errors["empty_submission"]
        assert len(expected) == 9
        assert set(result.observed_errors) == set(expected)
        assert result.missing_errors == []
        assert result.filled_fields == []
        assert tester.results[0].name.endswith("empty_submission:form_error")
        assert tester.results[0].verdict == Verdict.PASS

    def test_empty_submission_is_repeatable(self, tester, neffy_form, signup_engine):
        first = tester.run_scenario(scenario(neffy_form, "empty_submission"))
        signup_engine.reload()
        second = tester.run_scenario(scenario(neffy_form, "empty_submission"))
        assert set(first.observed_errors) == set(second.observed_errors)

    def test_partial_errors_are_missing_not_timeout(self, tester, neffy_form, signup_page):
        signup_page.broken_errors = {"#error-zip"}
        result = tester.run_scenario(scenario(neffy_form, "empty_submission"))
        assert result.state == FormState.ERRORS_OBSERVED
        assert result.verdict == Verdict.MISSING_ERRORS
        assert result.missing_errors == ["#error-zip"]
        assert "#error-zip" in result.message

    def test_no_response_is_timeout(self, tester, neffy_form, signup_page):
        signup_page.ignore_submit = True
        result = tester.run_scenario(scenario(neffy_form, "empty_submission"))
        assert result.state == FormState.TIMEOUT
        assert result.verdict == Verdict.TIMEOUT

    def test_valid_submission_without_success_indicator_times_out(self, tester, neffy_form, signup_page):
        signup_page.show_success = False
        result = tester.run_scenario(scenario(neffy_form, "valid_submission"))
        assert result.verdict == Verdict.TIMEOUT

    def test_invalid_submission(self, tester, neffy_form, signup_page):
        result = tester.run_scenario(scenario(neffy_form, "invalid_submission"))
        assert result.verdict == Verdict.PASS
        assert signup_page.values["email"] == "invalid-email"
        assert "i_am" not in signup_page.values

    def test_override_scenario_reports_extra_errors(self, tester, neffy_form):
        result = tester.run_scenario(scenario(neffy_form, "invalid_email"))
        assert result.verdict == Verdict.PASS
        assert result.observed_errors == ["#error-email"]

    def test_errors_after_valid_submission(self, tester, neffy_form, signup_page):
        signup_page.broken_errors = set()
        custom = SubmissionScenario("bad_phone", bucket="valid", expect_success=True, overrides={"phone": "1"})
        result = tester.run_scenario(custom)
        assert result.verdict == Verdict.UNEXPECTED_OUTCOME
        assert "#error-phone" in result.observed_errors

    def test_error_scenario_without_expectations_is_skipped(self, tester):
        result = tester.run_scenario(SubmissionScenario("empty_submission", bucket="empty"))
        assert result.verdict == Verdict.SKIPPED


class TestConditionalFields:
    def test_hidden_conditionals_are_skipped(self, tester, neffy_form, signup_engine):
        result = tester.run_scenario(scenario(neffy_form, "valid_submission"))
        assert "weight" in result.skipped_fields
        assert "device_1_expiration_year" in result.skipped_fields
        touched = [c[1] for c in signup_engine.calls if c[0] in ("check", "select")]
        assert not any("weight" in sel for sel in touched)
        assert "#device_1_expiration_year" not in touched

    def test_dependency_met_fills_conditional(self, tester, signup_engine):
        custom = SubmissionScenario(
            "caregiver", bucket="valid", expect_success=True,
            overrides={
                "i_am": "Caregiver",
                "subscription": ["Set up expiration reminders for neffy devices"],
            },
        )
        result = tester.run_scenario(custom)
        assert "weight" in result.filled_fields
        assert "device_1_expiration_year" in result.filled_fields
        assert ("select", "#device_1_expiration_year", "2025") in signup_engine.calls

    def test_fields_filled_in_declaration_order(self, tester, neffy_form):
        result = tester.run_scenario(scenario(neffy_form, "valid_submission"))
        order = [name for name in neffy_form.fields if name in result.filled_fields]
        assert result.filled_fields == order

    def test_checkbox_group_matches_selected_set(self, tester, signup_page, neffy_form):
        tester.run_scenario(scenario(neffy_form, "valid_submission"))
        assert signup_page.values["subscription"] == {"Get news and updates about neffy"}


class TestIndividualFields:
    def test_each_visible_field_fires_form_field(self, tester, neffy_form):
        results = tester.test_individual_fields()
        analytics = [r for r in results if r.name.endswith(":form_field")]
        visible = [n for n, f in neffy_form.fields.items() if f.conditional is None]
        assert len(analytics) == len(visible)
        assert all(r.verdict == Verdict.PASS for r in results)


class TestRunAll:
    def test_full_run_passes(self, tester, signup_engine):
        results = tester.run_all()
        assert results
        failures = [(r.name, r.verdict, r.message) for r in results if not r.passed]
        assert failures == []
        scenario_checks = [r.name for r in results if r.category == "form" and "/field:" not in r.name]
        assert scenario_checks == [
            "form:neffy_consumer_signup/valid_submission",
            "form:neffy_consumer_signup/empty_submission",
            "form:neffy_consumer_signup/invalid_submission",
            "form:neffy_consumer_signup/invalid_email",
        ]
        # one reload per scenario
        assert len(signup_engine.interactions("reload")) == 4

    def test_scenario_toggles(self, signup_engine, neffy_form, fast_settings, make_correlator):
        settings = fast_settings.merged({"form": {"scenarios": {"individual_fields": False, "invalid_email": False}}})
        tester = FormTester(signup_engine, neffy_form, settings, make_correlator(signup_engine, settings),
                            clock=signup_engine.clock)
        names = [s.name for s in tester.scenarios()]
        assert names == ["valid_submission", "empty_submission", "invalid_submission"]

    def test_missing_form_after_refresh_aborts_scenario(self, tester, signup_page):
        signup_page.missing_after_reload = True
        results = tester.run_all()
        scenario_checks = [r for r in results if r.name.endswith("/valid_submission")]
        assert scenario_checks[0].verdict == Verdict.INTERACTION_ERROR
        assert "Form not found" in scenario_checks[0].message

    def test_interaction_failure_is_reported_not_raised(self, tester, signup_engine):
        signup_engine.failing_selectors = {"#sign-up-form-submit"}
        results = tester.run_all()
        valid = [r for r in results if r.name == "form:neffy_consumer_signup/valid_submission"]
        assert valid[0].verdict == Verdict.INTERACTION_ERROR
        assert "#sign-up-form-submit" in valid[0].message

    def test_lost_page_while_observing_aborts_only_that_scenario(self, tester, signup_engine):
        signup_engine.broken_queries = {"#error-email"}
        results = tester.run_all()
        verdicts = {r.name: r for r in results}
        valid = verdicts["form:neffy_consumer_signup/valid_submission"]
        assert valid.verdict == Verdict.INTERACTION_ERROR
        assert "Execution context was destroyed" in valid.message
        # later scenarios still ran
        assert "form:neffy_consumer_signup/invalid_email" in verdicts

    def test_after_refresh_actions_run_each_phase(self, signup_engine, neffy_form, fast_settings, make_correlator):
        signup_engine.page.present.add(".reopen")
        tester = FormTester(
            signup_engine, neffy_form, fast_settings, make_correlator(signup_engine, fast_settings),
            after_refresh_actions=[ClickStep(".reopen")], clock=signup_engine.clock,
        )
        tester.run_all()
        assert len([c for c in signup_engine.calls if c[:2] == ("click", ".reopen")]) == 4

    def test_untracked_forms_skip_correlation(self, signup_engine, neffy_form, fast_settings):
        tester = FormTester(signup_engine, neffy_form, fast_settings, correlator=None, clock=signup_engine.clock)
        results = tester.run_all()
        assert not any(r.category == "analytics" for r in results)


class TestAutoDetectedForms:
    """Forms synthesised by discovery have no expectations beyond success."""

    def test_success_is_inferred_without_indicators(self, signup_engine, fast_settings, signup_page):
        config = FormConfig.from_dict("auto:form", {
            "form_selector": "form",
            "submit_button_selector": "#sign-up-form-submit",
            "auto_detected": True,
            "fields": {
                "email": {"type": "email", "selector": "#email", "test_values": {"valid": "a@b.co"}},
            },
        })
        signup_page.errors = lambda: []
        tester = FormTester(signup_engine, config, fast_settings, correlator=None, clock=signup_engine.clock)
        results = tester.run_all()
        by_name = {r.name: r for r in results}
        valid = by_name["form:auto:form/valid_submission"]
        assert valid.verdict == Verdict.PASS
        assert valid.details["inferred"] is True
        assert by_name["form:auto:form/empty_submission"].verdict == Verdict.SKIPPED
