"""Exact pattern search over the notes directory using ripgrep.

Searches are always rooted at one directory chosen when the searcher is built;
callers control only the pattern, extra flags and the result limit.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 50

NO_MATCHES_MESSAGE = "No matches found"

# Flags that keep the output parseable as "path:line:content"
OUTPUT_FLAGS = ("--line-number", "--with-filename", "--no-heading", "--color=never")

# ripgrep exit codes
EXIT_MATCHES = 0
EXIT_NO_MATCHES = 1


class RipgrepError(Exception):
    """Raised when ripgrep fails (exit code other than 0 or 1)."""

    def __init__(self, message: str, exit_code: int | None = None, stderr: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class RipgrepNotAvailableError(RipgrepError):
    """Raised when the ripgrep executable cannot be started."""

    pass


@dataclass
class RipgrepResult:
    """Result of a ripgrep search."""

    results: list[str]
    total_matches: int
    limited: bool

    def to_dict(self) -> dict:
        return {
            "results": self.results,
            "total_matches": self.total_matches,
            "limited": self.limited,
        }


def limit_results(lines: list[str], max_results: int) -> RipgrepResult:
    """
    Truncate matching lines to max_results.

    When lines are dropped a summary line is appended. An empty list is
    replaced by the "No matches found" marker.
    """
    total = len(lines)
    limited = total > max_results
    results = lines[:max_results]

    if limited:
        results.append(
            f"... and {total - max_results} more results (limited to {max_results})"
        )

    return RipgrepResult(
        results=results if results else [NO_MATCHES_MESSAGE],
        total_matches=total,
        limited=limited,
    )


class RipgrepSearcher:
    """Runs ripgrep restricted to a single root directory."""

    def __init__(self, root: Path, executable: str = "rg"):
        """
        Args:
            root: Directory every search is confined to
            executable: ripgrep binary name or path
        """
        self.root = Path(root).expanduser().resolve()
        self.executable = executable

    def build_command(self, pattern: str, flags: list[str] | None = None) -> list[str]:
        """Build the argv for a search; caller flags come first, verbatim."""
        return [self.executable, *(flags or []), *OUTPUT_FLAGS, pattern, str(self.root)]

    async def search(
        self,
        pattern: str,
        flags: list[str] | None = None,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> RipgrepResult:
        """
        Execute a ripgrep search in the notes directory.

        The whole output is collected before truncating, so total_matches is
        always exact.

        Args:
            pattern: The search pattern (regex)
            flags: Additional ripgrep flags (e.g., ["-i"], ["-w"])
            max_results: Maximum number of matching lines to return

        Returns:
            RipgrepResult with matching "path:line:content" lines.

        Raises:
            ValueError: If max_results is negative.
            RipgrepNotAvailableError: If ripgrep cannot be started.
            RipgrepError: If ripgrep exits with an error.
        """
        if max_results < 0:
            raise ValueError(f"max_results must be >= 0, got {max_results}")

        cmd = self.build_command(pattern, flags)
        logger.debug("Running ripgrep: %s", cmd)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error("ripgrep spawn error: %s", e)
            raise RipgrepNotAvailableError(
                f"Could not start ripgrep ({self.executable}): {e}"
            ) from e

        stdout, stderr = await process.communicate()
        output = stdout.decode("utf-8", errors="replace")
        error_output = stderr.decode("utf-8", errors="replace")

        if process.returncode == EXIT_MATCHES:
            # Records are newline-terminated; other line breaks belong to the match
            lines = [line for line in output.split("\n") if line.strip()]
            return limit_results(lines, max_results)

        if process.returncode == EXIT_NO_MATCHES:
            return RipgrepResult(results=[NO_MATCHES_MESSAGE], total_matches=0, limited=False)

        logger.error("ripgrep error (exit code %s): %s", process.returncode, error_output)
        raise RipgrepError(
            f"ripgrep failed: {error_output.strip()}",
            exit_code=process.returncode,
            stderr=error_output,
        )
