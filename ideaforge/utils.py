"""Shared utility functions for IdeaForge.

Provides JSON I/O, JSON extraction from free-form model output, name helpers,
and Rich-based console reporting. Every public function is side-effect-free
except for the ``print_*`` helpers and ``write_json``.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------


def pascal_case(value: str) -> str:
    """Convert ``user-profile``, ``user_profile`` or ``userProfile`` to ``UserProfile``.

    Only the first letter of each word is touched, so existing inner capitals
    survive.
    """
    parts = re.split(r"[-_\s]+", value.strip())
    return "".join(word[0].upper() + word[1:] for word in parts if word)


def is_identifier(value: str) -> bool:
    """Return ``True`` for a JavaScript-safe component identifier."""
    return re.fullmatch(r"[A-Za-z_$][A-Za-z0-9_$]*", value) is not None


# ---------------------------------------------------------------------------
# JSON extraction from model output
# ---------------------------------------------------------------------------


def extract_json_object(text: str) -> dict[str, Any]:
    """Return the outermost JSON object embedded in *text*.

    Models frequently wrap JSON in prose or markdown fences; the first ``{``
    and the last ``}`` delimit the candidate.

    Raises:
        ValueError: If no parseable object is present.
    """
    text = text.strip()
    try:
        data = json.loads(text)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last <= first:
        raise ValueError("No JSON object found in response")
    try:
        data = json.loads(text[first : last + 1])
    except json.JSONDecodeError as exc:
        raise ValueError(f"Malformed JSON object in response: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")
    return data


def extract_json_array(text: str) -> list[Any]:
    """Return the outermost JSON array embedded in *text*.

    Raises:
        ValueError: If no parseable array is present.
    """
    text = text.strip()
    first = text.find("[")
    last = text.rfind("]")
    if first == -1 or last <= first:
        raise ValueError("No JSON array found in response")
    try:
        data = json.loads(text[first : last + 1])
    except json.JSONDecodeError as exc:
        raise ValueError(f"Malformed JSON array in response: {exc}") from exc
    if not isinstance(data, list):
        raise ValueError("Response JSON is not an array")
    return data


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> Any:
    """Load and parse a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    raw = Path(path).read_text(encoding="utf-8")
    return json.loads(raw)


def write_json(data: Any, path: str | Path) -> None:
    """Write *data* as pretty-printed JSON, creating parent directories."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    file_path.write_text(content, encoding="utf-8")


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
        format_duration(3661.0) -> "1h 1m 1s"
    """
    if seconds < 0:
        return "0.0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if hours > 0 or minutes > 0:
        parts.append(f"{int(secs)}s")
    else:
        parts.append(f"{secs:.1f}s")

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_stage_header(stage: str) -> None:
    """Print a full-width rule announcing a workflow stage."""
    console.print()
    console.print(Rule(f"[bold bright_cyan] {stage} [/bold bright_cyan]", style="bright_cyan"))


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
