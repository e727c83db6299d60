"""Run external commands with their command line and output logged."""

import subprocess
from pathlib import Path

from kobgitupdater.logger import get_logger

logger = get_logger(__name__)


class SubprocessExecutor:
    """Executes shell tools (``cp``, ``mv``) used as a last-resort file mover."""

    DEFAULT_TIMEOUT = 120.0

    @staticmethod
    def run_sync(
        *args: str,
        cwd: Path | str | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> subprocess.CompletedProcess[bytes]:
        """
        Run a command to completion without raising on a non-zero exit code.

        Args:
            *args: Command and arguments, passed without a shell
            cwd: Working directory
            timeout: Timeout in seconds

        Returns:
            The completed process. A missing executable or a timeout is
            reported as return code 127 or 124 with the error as stderr.
        """
        cmd_str = " ".join(args)
        logger.debug(f"Executing: {cmd_str}")

        try:
            result = subprocess.run(
                args, capture_output=True, cwd=str(cwd) if cwd else None, timeout=timeout, check=False
            )
        except FileNotFoundError as e:
            logger.error(f"Command not found: {cmd_str} - {e}")
            return subprocess.CompletedProcess(args, 127, b"", str(e).encode())
        except subprocess.TimeoutExpired:
            logger.error(f"Command timed out after {timeout}s: {cmd_str}")
            return subprocess.CompletedProcess(args, 124, b"", f"timed out after {timeout}s".encode())

        if result.returncode != 0:
            logger.warning(f"Command exited with {result.returncode}: {cmd_str}")
        output = SubprocessExecutor.output_of(result)
        if output:
            logger.debug(f"Command output: {output}")
        return result

    @staticmethod
    def output_of(result: subprocess.CompletedProcess[bytes]) -> str:
        """Decoded stderr of a finished command, or stdout when stderr is empty."""
        raw = result.stderr or result.stdout or b""
        return raw.decode("utf-8", errors="replace").strip()
