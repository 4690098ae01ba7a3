# -*- coding: utf-8 -*-
"""
CLI Main - sfdeploy
===================

Command-line interface for deploying local metadata to a Salesforce org.

Usage:
    sfdeploy deploy
    sfdeploy deploy "src/classes/*" --org dev
    sfdeploy deploy --meta --coverage
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from .. import __version__
from ..client import SalesforceClient
from ..config import DeployOptions, SalesforceConfig
from ..deploy.orchestrator import DeployOrchestrator
from ..deploy.report import render_report
from ..errors import DeployFailedError, SalesforceError
from ..logging_config import setup_logging
from .output import Output

logger = logging.getLogger(__name__)


class CLI:
    """Main CLI class."""

    def __init__(self, output: Optional[Output] = None):
        self.output = output or Output()
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        # Parent parser for common arguments
        parent_parser = argparse.ArgumentParser(add_help=False)
        parent_parser.add_argument(
            "--json",
            action="store_true",
            help="Output the report in JSON format"
        )
        parent_parser.add_argument(
            "--no-color",
            action="store_true",
            help="Disable colored output"
        )
        parent_parser.add_argument(
            "--log-level",
            default=None,
            help="Log level (DEBUG, INFO, WARNING, ERROR)"
        )

        parser = argparse.ArgumentParser(
            prog="sfdeploy",
            description="sfdeploy - Salesforce metadata deployer",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            parents=[parent_parser],
            epilog="""
Exemplos:
  sfdeploy deploy                      Deploy de src/**/*
  sfdeploy deploy "src/classes/*"      Deploy das classes
  sfdeploy deploy --org dev --meta     Forca a Metadata API na org dev
"""
        )

        parser.add_argument(
            "--version", "-v",
            action="version",
            version=f"sfdeploy {__version__}"
        )

        subparsers = parser.add_subparsers(dest="command", help="Commands")

        deploy_parser = subparsers.add_parser(
            "deploy",
            help="Deploy metadata files",
            parents=[parent_parser]
        )
        deploy_parser.add_argument(
            "patterns",
            nargs="*",
            help="Glob patterns relative to the project (default: src/**/*)"
        )
        deploy_parser.add_argument("--org", "-o", help="Org selector (SALESFORCE_<ORG>_*)")
        deploy_parser.add_argument(
            "--meta",
            action="store_true",
            help="Force a Metadata API deploy"
        )
        deploy_parser.add_argument(
            "--coverage",
            action="store_true",
            help="Show code coverage per component"
        )

        return parser

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Returns:
            Exit code (0 for success)
        """
        parsed = self.parser.parse_args(args)

        if parsed.no_color:
            self.output.disable_color()

        if not parsed.command:
            self.parser.print_help()
            return 0

        setup_logging(level=parsed.log_level)

        handler = getattr(self, f"cmd_{parsed.command}", None)
        if handler is None:
            self.output.error(f"Unknown command: {parsed.command}")
            return 1

        return handler(parsed)

    def cmd_deploy(self, args) -> int:
        """Deploy command."""
        try:
            options = DeployOptions.from_env(
                force_metadata=args.meta or None,
                coverage=args.coverage or None
            )
        except ValueError as e:
            self.output.error(f"Invalid configuration: {e}")
            return 1

        sf_client = SalesforceClient(SalesforceConfig.from_env(tenant_id=args.org))
        orchestrator = DeployOrchestrator(sf_client, options)

        try:
            report = asyncio.run(orchestrator.run(args.patterns or None))
        except DeployFailedError as e:
            if e.report is not None:
                self._show_report(e.report, args)
            self.output.error(f"Deploy failed: {e}")
            return 1
        except SalesforceError as e:
            self.output.error(f"Error: {e}")
            return 1

        self._show_report(report, args)
        if not args.json:
            self.output.success("Deploy complete")
        return 0

    def _show_report(self, report, args):
        if args.json:
            print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False), file=self.output.stream)
        else:
            render_report(report, self.output)


def run_cli(args: Optional[List[str]] = None) -> int:
    """Run the CLI."""
    return CLI().run(args)


def main():
    """Entry point."""
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
