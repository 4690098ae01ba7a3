# -*- coding: utf-8 -*-
"""
Testes do relatorio de deploy
"""

from io import StringIO

import pytest

from sfdeploy.cli.output import Output
from sfdeploy.deploy.models import DeployStrategy, Outcome
from sfdeploy.deploy.report import (
    build_report,
    build_test_run,
    classify_success,
    compute_coverage,
    render_report,
)


@pytest.fixture
def deploy_details():
    """DeployDetails como retornado pela Metadata API (valores em texto)"""
    return {
        "componentSuccesses": [
            {"fullName": "package.xml", "componentType": None, "created": "false",
             "changed": "true", "deleted": "false"},
            {"fullName": "Zeta", "componentType": "ApexClass", "created": "true",
             "changed": "false", "deleted": "false"},
            {"fullName": "Alpha", "componentType": "ApexClass", "created": "false",
             "changed": "false", "deleted": "false"},
            {"fullName": "Old", "componentType": "ApexPage", "created": "false",
             "changed": "false", "deleted": "true"},
        ],
        "componentFailures": [
            {"fullName": "Beta", "componentType": "ApexTrigger", "problemType": "Error",
             "problem": "Variable does not exist: x", "lineNumber": "7", "columnNumber": "12"},
            {"fullName": "Alpha", "componentType": "ApexClass", "problemType": "Error",
             "problem": "Missing ';'", "lineNumber": "2", "columnNumber": "1"},
        ],
        "runTestResult": {
            "numTestsRun": "4",
            "numFailures": "1",
            "totalTime": "1234.0",
            "codeCoverage": [
                {"type": "Class", "name": "Low", "numLocations": "100", "numLocationsNotCovered": "25"},
                {"type": "Class", "name": "Empty", "numLocations": "0", "numLocationsNotCovered": "0"},
                {"type": "Trigger", "name": "Half", "numLocations": "10", "numLocationsNotCovered": "5"},
            ],
            "codeCoverageWarnings": [{"name": "Low", "message": "Average test coverage is below 75%"}],
            "failures": [{"name": "LowTest", "methodName": "testIt", "message": "System.AssertException: boom"}],
        },
    }


class TestClassification:
    """Flags created/changed/deleted -> Outcome"""

    def test_created(self):
        assert classify_success({"created": True, "changed": True}) == Outcome.CREATED

    def test_changed(self):
        assert classify_success({"created": "false", "changed": "true"}) == Outcome.UPDATED

    def test_deleted(self):
        assert classify_success({"deleted": "true"}) == Outcome.DELETED

    def test_no_change(self):
        assert classify_success({"created": "false", "changed": "false"}) == Outcome.NO_CHANGE


class TestCoverage:
    """Calculo de coverage"""

    def test_partial_coverage(self):
        assert compute_coverage(100, 25) == pytest.approx(75.0)

    def test_zero_locations_is_full_coverage(self):
        assert compute_coverage(0, 0) == 100.0
        assert compute_coverage(0, 5) == 100.0

    def test_coverage_sorted_descending(self, deploy_details):
        summary = build_test_run(deploy_details["runTestResult"], include_coverage=True)

        assert [c.name for c in summary.coverage] == ["Empty", "Low", "Half"]
        low = summary.coverage[1]
        assert low.covered_locations == 75
        assert low.total_locations == 100

    def test_coverage_only_when_requested(self, deploy_details):
        summary = build_test_run(deploy_details["runTestResult"], include_coverage=False)

        assert summary.coverage == ()
        assert summary.tests_run == 4
        assert summary.failures == 1
        assert summary.total_time_ms == 1234.0


class TestBuildReport:
    """Normalizacao de DeployDetails"""

    def test_sorted_by_type_and_name(self, deploy_details):
        report = build_report(deploy_details, DeployStrategy.METADATA, success=False)

        assert [(c.component_type, c.full_name) for c in report.successes] == [
            ("", "package.xml"),
            ("ApexClass", "Alpha"),
            ("ApexClass", "Zeta"),
            ("ApexPage", "Old"),
        ]
        assert [c.full_name for c in report.failures] == ["Alpha", "Beta"]

    def test_outcomes(self, deploy_details):
        report = build_report(deploy_details, DeployStrategy.METADATA, success=True)
        outcomes = {c.full_name: c.outcome for c in report.successes}

        assert outcomes["Zeta"] == Outcome.CREATED
        assert outcomes["package.xml"] == Outcome.UPDATED
        assert outcomes["Alpha"] == Outcome.NO_CHANGE
        assert outcomes["Old"] == Outcome.DELETED

    def test_failure_problem_fields(self, deploy_details):
        report = build_report(deploy_details, DeployStrategy.METADATA, success=False)
        beta = report.failures[1]

        assert beta.outcome == Outcome.FAILED
        assert beta.problem.line == 7
        assert beta.problem.column == 12
        assert beta.problem.message == "Variable does not exist: x"

    def test_warnings_and_failure_messages_verbatim(self, deploy_details):
        report = build_report(deploy_details, DeployStrategy.METADATA, success=True)

        assert report.test_run.coverage_warnings == ("Average test coverage is below 75%",)
        assert report.test_run.failure_messages == ("System.AssertException: boom",)

    def test_single_failure_not_wrapped_in_list(self):
        """A Metadata API devolve um dict quando ha um unico item"""
        details = {"componentFailures": {"fullName": "Foo", "componentType": "ApexClass",
                                         "problem": "x", "lineNumber": "1"}}

        report = build_report(details, DeployStrategy.METADATA, success=False)

        assert len(report.failures) == 1

    def test_compiler_errors_fallback(self):
        """Sem componentFailures, usa as falhas informadas (CompilerErrors)"""
        report = build_report(
            None,
            DeployStrategy.TOOLING,
            success=False,
            failures=[{"name": "Foo", "line": 10, "column": 3, "problem": "Unexpected token"}]
        )

        failure = report.failures[0]
        assert failure.full_name == "Foo"
        assert (failure.problem.line, failure.problem.column) == (10, 3)

    def test_to_dict(self, deploy_details):
        data = build_report(deploy_details, DeployStrategy.METADATA, success=True,
                            include_coverage=True).to_dict()

        assert data["strategy"] == "metadata"
        assert data["successes"][1]["outcome"] == "noChange"
        assert data["testRun"]["coverage"][1]["coverage"] == 75.0


class TestRenderReport:
    """Saida do relatorio na CLI"""

    def _render(self, report):
        stream = StringIO()
        output = Output(stream=stream)
        output.disable_color()
        render_report(report, output)
        return stream.getvalue()

    def test_failures_first_on_failure(self, deploy_details):
        text = self._render(build_report(deploy_details, DeployStrategy.METADATA, success=False))

        assert text.index("component failures [2]") < text.index("component successes [4]")
        assert "[ApexTrigger: Beta] Error at l:7/c:12 => Variable does not exist: x" in text

    def test_successes_first_on_success(self, deploy_details):
        text = self._render(build_report(deploy_details, DeployStrategy.METADATA, success=True,
                                         include_coverage=True))

        assert text.index("component successes") < text.index("component failures")
        assert "75.00% => Class:Low (75/100)" in text
        assert "Average test coverage is below 75%" in text
