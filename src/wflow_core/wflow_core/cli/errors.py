# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Actionable error messages for the command line."""

import re
from typing import Optional, Tuple

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

console = Console(stderr=True)

ERROR_PATTERNS = {
    "not_found": {
        "pattern": r"(no such file or directory|not found)",
        "message": "File not found",
        "action": "Check the path, or run from the repository root",
    },
    "is_directory": {
        "pattern": r"is a directory",
        "message": "Expected a file but got a directory",
        "action": "Pass a workflow file, e.g. .github/workflows/ci.yml",
    },
    "permission": {
        "pattern": r"(permission denied|access denied|read-only file system)",
        "message": "Permission denied",
        "action": "Check file permissions or write to a different location",
    },
    "decode": {
        "pattern": r"(codec can't decode|invalid start byte|unicodedecodeerror)",
        "message": "File is not valid UTF-8 text",
        "action": "Re-save the file with UTF-8 encoding",
    },
    "yaml": {
        "pattern": r"yaml parse error",
        "message": "Invalid YAML syntax",
        "action": "Fix the syntax at the reported line and column",
    },
}


def detect_error_pattern(output: str) -> Optional[Tuple[str, str]]:
    for pattern_info in ERROR_PATTERNS.values():
        if re.search(pattern_info["pattern"], output, re.IGNORECASE):
            return (pattern_info["message"], pattern_info["action"])
    return None


def show_error(title: str, output: str = ""):
    """Display a formatted error, with a fix hint when the cause is recognized."""
    detected = detect_error_pattern(output) if output else None
    error_text = Text()
    error_text.append(f"✗ {title}", style="bold red")
    if detected:
        message, action = detected
        error_text.append(f"\n\n{message}\n\n", style="red")
        error_text.append("→ Fix: ", style="bold yellow")
        error_text.append(action, style="yellow")
    console.print(Panel(error_text, border_style="red", expand=False))

    lines = output.strip().splitlines()
    if lines:
        for line in lines[-10:]:
            console.print(f"  [dim]│[/dim] {escape(line)}")


def show_success(message: str):
    console.print(f"[green]✓[/green] {escape(message)}", style="green")
