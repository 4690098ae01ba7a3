# -*- coding: utf-8 -*-
"""
Tests for CLI Tool
==================

Tests for sfdeploy.cli - Output e comando deploy.
"""

import json
from io import StringIO
from unittest.mock import AsyncMock, patch

import pytest

from sfdeploy.cli.main import CLI
from sfdeploy.cli.output import Color, Output
from sfdeploy.deploy.models import (
    ComponentResult,
    DeployReport,
    DeployStrategy,
    Outcome,
    Problem,
)
from sfdeploy.errors import DeployFailedError, MissingFilesError


class TestOutput:
    """Tests for Output class"""

    def test_output_creation(self):
        output = Output()
        assert output._color_enabled is True

    def test_disable_color(self):
        output = Output()
        output.disable_color()
        assert output._color_enabled is False

    def test_success(self):
        stream = StringIO()
        output = Output(stream=stream)
        output.disable_color()
        output.success("Done")

        assert "[OK] Done" in stream.getvalue()

    def test_colored_outcome(self):
        stream = StringIO()
        output = Output(stream=stream)
        output.create("ApexClass: Foo")

        assert Color.GREEN.value in stream.getvalue()
        assert "[+] ApexClass: Foo" in stream.getvalue()


@pytest.fixture
def cli():
    stream = StringIO()
    return CLI(output=Output(stream=stream))


@pytest.fixture
def success_report():
    return DeployReport(
        strategy=DeployStrategy.TOOLING,
        success=True,
        successes=(ComponentResult("Foo", "ApexClass", Outcome.UPDATED),)
    )


@pytest.fixture
def failed_report():
    return DeployReport(
        strategy=DeployStrategy.TOOLING,
        success=False,
        failures=(ComponentResult(
            "Foo", "ApexClass", Outcome.FAILED,
            Problem("Error", 10, 3, "Unexpected token")
        ),)
    )


class TestCLI:
    """Tests for CLI class"""

    def test_cli_creation(self, cli):
        assert cli.parser is not None
        assert cli.output is not None

    def test_no_command(self, cli):
        assert cli.run([]) == 0

    def test_deploy_arguments(self, cli):
        parsed = cli.parser.parse_args(["deploy", "src/classes/*", "-o", "dev", "--meta", "--coverage"])

        assert parsed.patterns == ["src/classes/*"]
        assert parsed.org == "dev"
        assert parsed.meta is True
        assert parsed.coverage is True

    def test_deploy_success(self, cli, success_report):
        with patch("sfdeploy.cli.main.DeployOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run = AsyncMock(return_value=success_report)

            result = cli.run(["deploy", "--no-color"])

        assert result == 0
        text = cli.output.stream.getvalue()
        assert "[~] ApexClass: Foo" in text
        assert "Deploy complete" in text

    def test_deploy_passes_flags(self, cli, success_report):
        with patch("sfdeploy.cli.main.DeployOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run = AsyncMock(return_value=success_report)

            cli.run(["deploy", "src/classes/*", "--meta", "--coverage"])

        options = orchestrator_cls.call_args.args[1]
        assert options.force_metadata is True
        assert options.coverage is True
        orchestrator_cls.return_value.run.assert_awaited_once_with(["src/classes/*"])

    def test_deploy_failure_shows_report(self, cli, failed_report):
        with patch("sfdeploy.cli.main.DeployOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run = AsyncMock(
                side_effect=DeployFailedError("compile failed", report=failed_report)
            )

            result = cli.run(["deploy", "--no-color"])

        assert result == 1
        text = cli.output.stream.getvalue()
        assert text.index("[ApexClass: Foo] Error at l:10/c:3") < text.index("Deploy failed")

    def test_deploy_error(self, cli):
        with patch("sfdeploy.cli.main.DeployOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run = AsyncMock(
                side_effect=MissingFilesError(["src/classes/Ghost.cls"])
            )

            result = cli.run(["deploy", "--no-color"])

        assert result == 1
        assert "src/classes/Ghost.cls" in cli.output.stream.getvalue()

    def test_json_report(self, cli, success_report):
        with patch("sfdeploy.cli.main.DeployOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run = AsyncMock(return_value=success_report)

            result = cli.run(["deploy", "--json"])

        assert result == 0
        data = json.loads(cli.output.stream.getvalue())
        assert data["success"] is True
        assert data["successes"][0]["outcome"] == "updated"
