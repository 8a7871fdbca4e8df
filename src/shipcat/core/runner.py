"""Command execution on top of invoke."""

import contextlib
import os
import platform
from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from shipcat.core.log import logger


class Runner(Context):
    """invoke.Context with a single entry point for build commands.

    One Runner per build job: cd() state lives on the context, so
    instances must not be shared between threads.
    """

    def kill(self) -> None:
        """Kill the running subprocess.

        invoke kills timed-out commands with signal.SIGKILL, which does
        not exist on Windows. os.kill() there accepts a plain number and
        hands it to TerminateProcess(), so send 9 directly.
        """
        if platform.system() == "Windows":
            pid = self.pid if self.using_pty else self.process.pid
            with contextlib.suppress(ProcessLookupError):
                os.kill(pid, 9)
            return

        super().kill()

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        log_file: Path | None = None,
        log_level: str | None = None,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> Result:
        """Execute a command.

        Args:
            command: Shell command string
            cwd: Working directory
            timeout: Maximum execution time in seconds; a timed-out
                command reports exit code -1
            log_file: Write combined stdout/stderr here
            log_level: Re-emit every output line at this level
            check: Raise invoke.UnexpectedExit on non-zero exit
            env: Variables added to (not replacing) os.environ for
                this command only

        Returns:
            invoke.Result with stdout, stderr and exited
        """
        kwargs = {
            "hide": True,
            "warn": not check,
            "in_stream": False,
        }
        if timeout:
            kwargs["timeout"] = timeout
        if env:
            kwargs["env"] = env

        try:
            if cwd:
                with self.cd(str(cwd)):
                    result = self.run(command, **kwargs)
            else:
                result = self.run(command, **kwargs)
        except CommandTimedOut as e:
            result = e.result
            result.exited = -1

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            log_file.write_text(result.stdout + result.stderr)

        if log_level:
            # Output goes in as an attribute; braces in it are not templates
            for line in (result.stdout + result.stderr).splitlines():
                logger.log(log_level, "{line}", line=line.rstrip())

        return result
