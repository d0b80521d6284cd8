"""Run the external build command."""

import asyncio
import logging
import os
import shlex
from collections.abc import Mapping, Sequence
from pathlib import Path

from extwatch_core.errors import BuildFailed, SpawnFailed

logger = logging.getLogger(__name__)


class BuildRunner:
    """Spawns the build command and waits for it to exit.

    Output goes straight to this process's stdout/stderr. The runner does not
    serialize calls itself; the orchestrator guarantees one build at a time.
    """

    def __init__(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ):
        """Initialize runner.

        Args:
            command: Program to run
            args: Arguments passed to the program
            cwd: Working directory (the project root)
            env: Extra variables layered over the current environment
        """
        self.command = command
        self.args = list(args)
        self.cwd = Path(cwd) if cwd is not None else None
        self.env = dict(env) if env else None

    @classmethod
    def from_argv(cls, argv: Sequence[str], cwd: str | Path | None = None) -> "BuildRunner":
        """Create a runner from a full argv list (program first)."""
        if not argv:
            raise ValueError("Build command must not be empty")
        return cls(argv[0], argv[1:], cwd=cwd)

    def describe(self) -> str:
        """Printable command line."""
        return shlex.join([self.command, *self.args])

    def _environment(self) -> dict[str, str] | None:
        if self.env is None:
            return None
        return {**os.environ, **self.env}

    async def run(self) -> None:
        """Run the build to completion.

        Raises:
            SpawnFailed: If the process could not be started
            BuildFailed: If the process exited with a non-zero code
        """
        logger.debug(f"Running build: {self.describe()} (cwd={self.cwd})")
        try:
            process = await asyncio.create_subprocess_exec(
                self.command,
                *self.args,
                cwd=self.cwd,
                env=self._environment(),
            )
        except OSError as e:
            raise SpawnFailed(self.describe(), e) from e

        exit_code = await process.wait()
        if exit_code != 0:
            raise BuildFailed(exit_code, self.describe())
        logger.debug(f"Build finished: {self.describe()}")
