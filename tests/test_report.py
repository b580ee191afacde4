import json

from rich.console import Console

from ga4check.automation.types import CheckResult, Verdict
from ga4check.report import Reporter


def reporter_with(*verdicts):
    reporter = Reporter(url="https://www.neffy.com/sign-up", console=Console(record=True, width=160))
    for index, verdict in enumerate(verdicts):
        reporter.add(CheckResult(name=f"check-{index}", verdict=verdict, message=verdict.value, elapsed_ms=10))
    return reporter


class TestReporter:
    def test_exit_code_zero_when_everything_passed_or_skipped(self):
        assert reporter_with(Verdict.PASS, Verdict.SKIPPED).exit_code() == 0
        assert reporter_with().exit_code() == 0

    def test_any_failure_sets_exit_code(self):
        for verdict in (Verdict.TIMEOUT, Verdict.MISMATCH, Verdict.MISSING_ERRORS, Verdict.CONFIG_ERROR):
            assert reporter_with(Verdict.PASS, verdict).exit_code() == 1

    def test_counts(self):
        counts = reporter_with(Verdict.PASS, Verdict.PASS, Verdict.TIMEOUT).counts()
        assert counts["pass"] == 2
        assert counts["timeout"] == 1
        assert counts["mismatch"] == 0

    def test_summary_table(self):
        reporter = reporter_with(Verdict.PASS, Verdict.MISSING_ERRORS)
        reporter.print_summary()
        text = reporter.console.export_text()
        assert "check-1" in text
        assert "missing_errors" in text
        assert "1 failed" in text

    def test_auto_detected_forms_are_marked(self):
        reporter = Reporter(url="https://www.example.com/", console=Console(record=True, width=160))
        reporter.add(CheckResult(
            name="form:auto:#contact/valid_submission", verdict=Verdict.PASS,
            message="no errors shown (inferred success)", details={"auto_detected": True},
        ))
        reporter.add(CheckResult(name="page_view", verdict=Verdict.PASS, message="matched page_view"))
        reporter.print_summary()
        lines = reporter.console.export_text().splitlines()
        assert any("(auto-detected) no errors shown" in line for line in lines)
        assert not any("page_view" in line and "auto-detected" in line for line in lines)

    def test_write_json(self, tmp_path):
        reporter = reporter_with(Verdict.PASS, Verdict.TIMEOUT)
        reporter.meta = {"form": "neffy_consumer_signup"}
        path = reporter.write_json(str(tmp_path / "out" / "report.json"))
        data = json.loads(path.read_text())
        assert data["exit_code"] == 1
        assert data["meta"]["form"] == "neffy_consumer_signup"
        assert [r["verdict"] for r in data["results"]] == ["pass", "timeout"]
