#!/usr/bin/env python3
"""Shipcat CLI - build a native package for every target and release it."""

import asyncio
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from shipcat.command.matrix import MatrixCommand
from shipcat.command.release import ReleaseCommand
from shipcat.core.config import State
from shipcat.core.log import logger


class CliState(State):
    """Build a native binding and CLI for every target in a matrix,
    package them for npm and publish them with the library crate.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.project.version 1.2.0)
    2. --include files, ./shipcat.yaml, then the user config dir
    3. .env file for secrets
    4. Environment variables
       (SHIPCAT_CONFIG__PROJECT__VERSION=1.2.0)

    Registry tokens are read from NPM_TOKEN and CRATES_IO_TOKEN when
    publishing starts.
    """

    release: CliSubCommand[ReleaseCommand]
    matrix: CliSubCommand[MatrixCommand]

    def cli_cmd(self):
        """Dispatch to active subcommand, or show help if none
        provided."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        # Close log sinks on the way out
        with logger:
            exit_code = asyncio.run(subcommand.run_workflow(self))
            raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
