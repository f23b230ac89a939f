"""Raw text sources for gamermon: diagnostic commands and kernel pseudo-files."""

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """A command or file could not produce text."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class TextProvider(Protocol):
    """Anything that turns a command or a file path into text."""

    def run(self, args: Sequence[str], env: Mapping[str, str] | None = None, check: bool = True) -> str:
        """
        Run a command and return its stdout. Raises ProviderError.

        With `check` false a non-zero exit status still returns the output.
        """
        ...

    def read(self, path: str) -> str:
        """Return the contents of a file. Raises ProviderError."""
        ...


class SystemProvider:
    """
    Provider backed by the local machine.

    Commands run synchronously with a per-invocation timeout so a hung tool
    cannot stall a refresh cycle indefinitely.
    """

    def __init__(self, timeout: float = 2.0) -> None:
        """
        Initialize the SystemProvider.

        Args:
            timeout: Seconds to wait for each command before giving up.
        """
        self._timeout = max(0.1, timeout)

    @property
    def timeout(self) -> float:
        """Get the per-command timeout."""
        return self._timeout

    @timeout.setter
    def timeout(self, value: float) -> None:
        """Set the per-command timeout."""
        self._timeout = max(0.1, value)  # Minimum 0.1 seconds

    def run(self, args: Sequence[str], env: Mapping[str, str] | None = None, check: bool = True) -> str:
        source = " ".join(args)
        full_env = {**os.environ, **env} if env else None
        try:
            result = subprocess.run(
                list(args),
                capture_output=True,
                env=full_env,
                timeout=self._timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ProviderError(source, "command not found") from exc
        except subprocess.TimeoutExpired as exc:
            raise ProviderError(source, f"timed out after {self._timeout}s") from exc
        except OSError as exc:
            raise ProviderError(source, str(exc)) from exc

        if result.returncode != 0:
            if check:
                raise ProviderError(source, f"exit status {result.returncode}")
            logger.debug("%s exited with status %d", source, result.returncode)

        logger.debug("%s produced %d bytes", source, len(result.stdout))
        return result.stdout.decode("utf-8", errors="replace")

    def read(self, path: str) -> str:
        try:
            return Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ProviderError(path, str(exc)) from exc
