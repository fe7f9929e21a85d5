"""LSF command runner.

Runs LSF command-line tools inside an environment built from the LSF
installation directories and returns their raw standard output.
"""

import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

import structlog

from ..errors import ConfigurationError, ExecutionError

logger = structlog.get_logger(__name__)

LSF_DIR_VARS = ("LSF_BINDIR", "LSF_LIBDIR", "LSF_SERVERDIR", "LSF_ENVDIR")


@dataclass(frozen=True)
class LsfEnvironment:
    """Locations of the LSF installation used to run commands.

    Paths are strings as found in the configuration or in the process
    environment (``LSF_BINDIR``, ``LSF_LIBDIR``, ``LSF_SERVERDIR``,
    ``LSF_ENVDIR``).
    """

    bindir: str = ""
    libdir: str = ""
    serverdir: str = ""
    envdir: str = ""

    @classmethod
    def from_env(
        cls,
        bindir: str | None = None,
        libdir: str | None = None,
        serverdir: str | None = None,
        envdir: str | None = None,
    ) -> "LsfEnvironment":
        """Build an environment, filling unset paths from ``os.environ``."""
        return cls(
            bindir=bindir or os.environ.get("LSF_BINDIR", ""),
            libdir=libdir or os.environ.get("LSF_LIBDIR", ""),
            serverdir=serverdir or os.environ.get("LSF_SERVERDIR", ""),
            envdir=envdir or os.environ.get("LSF_ENVDIR", ""),
        )

    def as_dict(self) -> dict[str, str]:
        return dict(
            zip(
                LSF_DIR_VARS,
                (self.bindir, self.libdir, self.serverdir, self.envdir),
                strict=True,
            ),
        )

    def validate(self) -> None:
        """Check that every LSF directory is set and exists.

        Raises:
            ConfigurationError: Listing every missing directory.
        """
        problems = []
        for name, value in self.as_dict().items():
            if not value:
                problems.append(f"{name} is not set")
            elif not Path(value).is_dir():
                problems.append(f"{name} directory missing: {value}")
        if problems:
            msg = "invalid LSF environment: " + "; ".join(problems)
            raise ConfigurationError(msg)

    def child_env(self, base: dict[str, str] | None = None) -> dict[str, str]:
        """Return the environment passed to LSF child processes."""
        env = dict(os.environ if base is None else base)
        env.update(self.as_dict())
        env["PATH"] = os.pathsep.join(
            p for p in (self.bindir, self.serverdir, env.get("PATH", "")) if p
        )
        env["LD_LIBRARY_PATH"] = os.pathsep.join(
            p for p in (self.libdir, env.get("LD_LIBRARY_PATH", "")) if p
        )
        return env


class CommandRunner:
    """Runs LSF executables and returns their standard output.

    The LSF environment is validated once at construction, so a broken
    installation fails at startup rather than on every scrape. Commands are
    never retried; a failure surfaces as :class:`ExecutionError`.
    """

    def __init__(
        self,
        environment: LsfEnvironment,
        timeout: float | None = None,
        validate: bool = True,
    ):
        """Initialize the runner.

        Args:
            environment: LSF installation directories.
            timeout: Seconds before a command is killed, None for no limit.
            validate: Check the LSF directories exist.

        Raises:
            ConfigurationError: If validation is requested and fails.
            ValueError: If timeout is not positive.
        """
        if timeout is not None and timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)
        if validate:
            environment.validate()
        self.environment = environment
        self._timeout = timeout
        self._env = environment.child_env()

    def run(self, executable: str, *args: str) -> bytes:
        """Run ``executable`` with ``args`` and return its stdout.

        Raises:
            ExecutionError: If the command cannot start, times out or
                exits with a non-zero status.
        """
        command = [executable, *args]
        start_time = time.time()
        logger.debug("Running command", command=" ".join(command))
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                env=self._env,
                timeout=self._timeout,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode(errors="replace").strip()
            reason = f"exit status {e.returncode}"
            if stderr:
                reason = f"{reason}: {stderr}"
            raise ExecutionError(command, reason) from e
        except subprocess.TimeoutExpired as e:
            raise ExecutionError(command, f"timed out after {self._timeout}s") from e
        except OSError as e:
            raise ExecutionError(command, str(e)) from e

        logger.debug(
            "Command completed",
            command=executable,
            duration_seconds=round(time.time() - start_time, 3),
        )
        return completed.stdout
