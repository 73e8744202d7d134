"""
Results and output formatting for wm-scrub.

Holds the per-pass MatchReport, the per-file ScrubResult, and the JSON and
text renderings of a batch of results.
"""

import json
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple


class ExitCode(IntEnum):
    """Exit codes for scrub results."""
    REMOVED = 0     # Watermark found and removed
    NOT_FOUND = 1   # No stream matched
    ERROR = 2       # Unreadable input or untrusted partial coverage


@dataclass
class MatchReport:
    """Counts for one scan pass of one watermark text."""
    text: str = ""
    strategy: str = ""
    streams_scanned: int = 0
    matched_ids: Set[int] = field(default_factory=set)
    replaced_count: int = 0
    deleted_count: int = 0
    skipped_on_error: int = 0
    literal_hits: int = 0
    hex_hits: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        """True if at least one stream was changed or marked."""
        return self.replaced_count + self.deleted_count > 0

    def record_error(self, error: Exception) -> None:
        self.skipped_on_error += 1
        self.errors.append(str(error))

    def to_dict(self) -> Dict:
        return {
            "text": self.text,
            "strategy": self.strategy,
            "streams_scanned": self.streams_scanned,
            "matched_ids": sorted(self.matched_ids),
            "replaced_count": self.replaced_count,
            "deleted_count": self.deleted_count,
            "skipped_on_error": self.skipped_on_error,
            "literal_hits": self.literal_hits,
            "hex_hits": self.hex_hits,
            "errors": list(self.errors),
        }


@dataclass
class ScrubResult:
    """Outcome of scrubbing one document."""
    exit_code: ExitCode
    data: Optional[bytes] = None
    reports: List[MatchReport] = field(default_factory=list)
    error: Optional[str] = None
    output_path: Optional[Path] = None

    @property
    def removed(self) -> bool:
        return self.exit_code == ExitCode.REMOVED

    @property
    def not_found(self) -> bool:
        return self.exit_code == ExitCode.NOT_FOUND

    @property
    def errored(self) -> bool:
        return self.exit_code == ExitCode.ERROR

    @property
    def replaced_count(self) -> int:
        return sum(r.replaced_count for r in self.reports)

    @property
    def deleted_count(self) -> int:
        return sum(r.deleted_count for r in self.reports)

    @property
    def skipped_on_error(self) -> int:
        return sum(r.skipped_on_error for r in self.reports)


# ANSI color codes
class Colors:
    """ANSI escape codes for terminal colors."""
    GREEN = "\033[92m"
    RED = "\033[91m"
    YELLOW = "\033[93m"
    RESET = "\033[0m"
    BOLD = "\033[1m"

    @classmethod
    def enabled(cls) -> bool:
        """Check if colors should be enabled."""
        if os.environ.get("NO_COLOR"):
            return False
        if not sys.stdout.isatty():
            return False
        # Enable ANSI on Windows 10+
        if sys.platform == "win32":
            os.system("")
        return True


def format_json(results: List[Tuple[Path, ScrubResult]]) -> str:
    """
    Format scrub results as JSON.

    Args:
        results: List of (file_path, result) tuples.

    Returns:
        JSON string representation.
    """
    output = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "summary": {
            "total": len(results),
            "removed": sum(1 for _, r in results if r.removed),
            "not_found": sum(1 for _, r in results if r.not_found),
            "errors": sum(1 for _, r in results if r.errored),
        },
        "files": [],
    }

    for file_path, result in results:
        file_report = {
            "path": str(file_path),
            "status": _exit_code_to_status(result.exit_code),
            "exit_code": result.exit_code.value,
            "replaced_count": result.replaced_count,
            "deleted_count": result.deleted_count,
            "skipped_on_error": result.skipped_on_error,
            "watermarks": [r.to_dict() for r in result.reports],
        }

        if result.output_path is not None:
            file_report["output"] = str(result.output_path)

        if result.error:
            file_report["error"] = result.error

        output["files"].append(file_report)

    return json.dumps(output, indent=2)


def format_text(results: List[Tuple[Path, ScrubResult]]) -> str:
    """
    Format scrub results as human-readable text with colors.

    Args:
        results: List of (file_path, result) tuples.

    Returns:
        Text string representation.
    """
    lines: List[str] = []
    use_color = Colors.enabled()

    for file_path, result in results:
        status = _exit_code_to_status(result.exit_code).replace("_", " ").upper()

        if use_color:
            if result.removed:
                status_str = f"{Colors.GREEN}{Colors.BOLD}[{status}]{Colors.RESET}"
            elif result.not_found:
                status_str = f"{Colors.YELLOW}{Colors.BOLD}[{status}]{Colors.RESET}"
            else:
                status_str = f"{Colors.RED}{Colors.BOLD}[{status}]{Colors.RESET}"
        else:
            status_str = f"[{status}]"

        lines.append(f"{status_str} {file_path.name}")

        if result.error:
            lines.append(f"  Error: {result.error}")

        for report in result.reports:
            if report.strategy == "delete":
                action = f"{report.deleted_count} object(s) deleted"
            else:
                action = f"{report.replaced_count} replacement(s)"
            lines.append(
                f"  - '{report.text}': {action}, "
                f"{report.streams_scanned} stream(s) scanned"
            )
            if report.skipped_on_error:
                lines.append(
                    f"    {report.skipped_on_error} stream(s) skipped on error"
                )

        if result.output_path is not None:
            lines.append(f"  Written to {result.output_path}")

    # Summary
    if len(results) > 1:
        removed = sum(1 for _, r in results if r.removed)
        not_found = sum(1 for _, r in results if r.not_found)
        errors = sum(1 for _, r in results if r.errored)
        lines.append("")

        if use_color:
            summary = (
                f"{Colors.GREEN}{removed} removed{Colors.RESET}, "
                f"{Colors.YELLOW}{not_found} not found{Colors.RESET}, "
                f"{Colors.RED}{errors} errors{Colors.RESET}"
            )
        else:
            summary = f"{removed} removed, {not_found} not found, {errors} errors"

        lines.append(summary)

    return "\n".join(lines)


def _exit_code_to_status(code: ExitCode) -> str:
    """Convert exit code to status string."""
    return {
        ExitCode.REMOVED: "removed",
        ExitCode.NOT_FOUND: "not_found",
        ExitCode.ERROR: "error",
    }.get(code, "unknown")
