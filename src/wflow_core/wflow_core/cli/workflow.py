# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Command line entry point: validate, format and inspect workflow files."""

import argparse
import logging
import os
import sys
from typing import List, Optional, Tuple

from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from wflow_common.constants import DEFAULT_WORKFLOWS_DIR
from wflow_common.validation import find_workflow_files

from ..config import load_and_validate_config
from ..logconfig import DocumentContext, configure_logging
from ..storage import FileStorage, StorageError
from ..workflow.linter import IssueSeverity, LintError, lint_workflow
from ..workflow.parser import ParseResult, parse_workflow
from ..workflow.projection import AddJobNodeData, JobNodeData, TriggerNodeData, workflow_to_flow
from ..workflow.serializer import serialize_workflow
from ..workflow.triggers import format_trigger
from .errors import show_error, show_success

LOGGER = logging.getLogger(__name__)

console = Console()

FileIssue = Tuple[str, LintError]


def build_workflow_parser() -> argparse.ArgumentParser:
    """Build the argument parser for workflow commands."""
    parser = argparse.ArgumentParser(
        description="Workflow file tools",
        prog="wflow",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit log records as JSON lines",
    )

    subparsers = parser.add_subparsers(
        dest="workflow_action",
        help="Workflow action to perform",
        required=True,
    )

    # validate subcommand
    validate_parser = subparsers.add_parser(
        "validate",
        help="Parse and lint workflow files",
        description=(
            "Check workflow files for syntax errors, malformed jobs, unknown or "
            "cyclic dependencies, and other issues."
        ),
    )
    validate_parser.add_argument(
        "paths",
        nargs="*",
        default=None,
        help=f"Workflow files or directories (default: {DEFAULT_WORKFLOWS_DIR})",
    )
    validate_parser.add_argument(
        "--format",
        choices=["text", "table"],
        default="text",
        help="Output format (default: text)",
    )
    validate_parser.add_argument(
        "--warnings-as-errors",
        "-W",
        action="store_true",
        help="Treat warnings as errors (affects exit code)",
    )
    validate_parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Only output errors and summary",
    )

    # fmt subcommand
    fmt_parser = subparsers.add_parser(
        "fmt",
        help="Rewrite a workflow file in canonical form",
        description="Print, check or rewrite a workflow file in canonical key order.",
    )
    fmt_parser.add_argument("path", help="Workflow file to format")
    mode = fmt_parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--check",
        action="store_true",
        help="Exit with status 1 if the file is not already canonical",
    )
    mode.add_argument(
        "--write",
        action="store_true",
        help="Rewrite the file in place",
    )

    # graph subcommand
    graph_parser = subparsers.add_parser(
        "graph",
        help="Show the job graph of a workflow file",
    )
    graph_parser.add_argument("path", help="Workflow file to inspect")

    return parser


def collect_files(paths: List[str]) -> List[str]:
    """Expand directories into the workflow files they contain."""
    files: List[str] = []
    for path in paths:
        if os.path.isdir(path):
            files.extend(find_workflow_files(path))
        else:
            files.append(path)
    return files


def _parse_errors_as_issues(result: ParseResult) -> List[LintError]:
    return [LintError(path="", message=error) for error in result.errors]


def validate_file(storage: FileStorage, filepath: str) -> List[LintError]:
    """Parse and lint one file. Read failures are returned as a single error."""
    DocumentContext.set(os.path.basename(filepath))
    try:
        text = storage.load_text(filepath)
    except StorageError as e:
        return [LintError(path="", message=str(e))]

    result = parse_workflow(text)
    issues = _parse_errors_as_issues(result)
    if result.is_blocking:
        return issues
    return issues + lint_workflow(result.workflow, source=text)


def _format_issue(filepath: str, issue: LintError) -> str:
    loc = filepath
    if issue.line is not None:
        loc += f":{issue.line}"
    msg = f"{loc}: {issue.severity.value}: {issue.message}"
    if issue.path:
        msg += f" (at {issue.path})"
    if issue.suggestion:
        msg += f". Did you mean '{issue.suggestion}'?"
    return msg


def print_result_text(issues: List[FileIssue], quiet: bool = False):
    """Print validation issues in text format."""
    for filepath, issue in issues:
        if quiet and issue.severity == IssueSeverity.WARNING:
            continue
        style = "red" if issue.is_error else "yellow"
        console.print(f"[{style}]{escape(_format_issue(filepath, issue))}[/{style}]")


def print_result_table(issues: List[FileIssue], quiet: bool = False):
    """Print validation issues in table format."""
    if not issues:
        return

    table = Table(title="Validation Results")
    table.add_column("File", style="cyan")
    table.add_column("Line", style="magenta")
    table.add_column("Severity", style="bold")
    table.add_column("Path")
    table.add_column("Message")
    table.add_column("Suggestion", style="green")

    for filepath, issue in issues:
        if quiet and issue.severity == IssueSeverity.WARNING:
            continue
        severity_style = "red" if issue.is_error else "yellow"
        table.add_row(
            escape(filepath),
            str(issue.line) if issue.line else "-",
            f"[{severity_style}]{issue.severity.value}[/{severity_style}]",
            escape(issue.path) or "-",
            escape(issue.message),
            escape(issue.suggestion) if issue.suggestion else "-",
        )

    console.print(table)


def cmd_validate(args: argparse.Namespace) -> int:
    """Execute the validate command."""
    paths = args.paths or [DEFAULT_WORKFLOWS_DIR]
    files = collect_files(paths)
    if not files:
        show_error("No workflow files found", f"{', '.join(paths)}: not found")
        return 1

    storage = FileStorage()
    issues: List[FileIssue] = []
    for filepath in files:
        if not args.quiet:
            console.print(f"Validating: {escape(filepath)}")
        issues.extend((filepath, issue) for issue in validate_file(storage, filepath))
    DocumentContext.clear()

    if args.format == "table":
        print_result_table(issues, args.quiet)
    else:
        print_result_text(issues, args.quiet)

    error_count = sum(1 for _, i in issues if i.is_error)
    warning_count = len(issues) - error_count

    if error_count == 0 and warning_count == 0:
        if not args.quiet:
            console.print("[green]All workflows valid.[/green]")
        return 0

    summary_parts = []
    if error_count > 0:
        summary_parts.append(f"[red]{error_count} error{'s' if error_count != 1 else ''}[/red]")
    if warning_count > 0:
        summary_parts.append(
            f"[yellow]{warning_count} warning{'s' if warning_count != 1 else ''}[/yellow]"
        )

    console.print(f"\nValidation complete: {', '.join(summary_parts)}")

    if error_count > 0:
        return 1
    if args.warnings_as_errors and warning_count > 0:
        return 1
    return 0


def _load_for_rewrite(storage: FileStorage, path: str) -> Optional[Tuple[str, ParseResult]]:
    try:
        text = storage.load_text(path)
    except StorageError as e:
        show_error(f"Could not read {path}", str(e))
        return None
    result = parse_workflow(text)
    if result.errors:
        # Rewriting would drop the jobs the parser rejected
        show_error(f"{path} has errors; not formatting", "\n".join(result.errors))
        return None
    return text, result


def cmd_fmt(args: argparse.Namespace) -> int:
    """Execute the fmt command."""
    storage = FileStorage()
    loaded = _load_for_rewrite(storage, args.path)
    if loaded is None:
        return 1
    text, result = loaded
    formatted = serialize_workflow(result.workflow)

    if args.check:
        if formatted != text:
            console.print(f"[yellow]Would reformat {escape(args.path)}[/yellow]")
            return 1
        show_success(f"{args.path} is already formatted")
        return 0

    if args.write:
        if formatted == text:
            show_success(f"{args.path} is already formatted")
            return 0
        try:
            storage.save_text(args.path, formatted)
        except StorageError as e:
            show_error(f"Could not write {args.path}", str(e))
            return 1
        show_success(f"Reformatted {args.path}")
        return 0

    sys.stdout.write(formatted)
    return 0


def cmd_graph(args: argparse.Namespace) -> int:
    """Execute the graph command."""
    storage = FileStorage()
    try:
        text = storage.load_text(args.path)
    except StorageError as e:
        show_error(f"Could not read {args.path}", str(e))
        return 1
    result = parse_workflow(text)
    if result.is_blocking:
        show_error(f"Could not parse {args.path}", "\n".join(result.errors))
        return 1
    for error in result.errors:
        console.print(f"[yellow]{escape(error)}[/yellow]")

    graph = workflow_to_flow(result.workflow)

    nodes = Table(title="Nodes")
    nodes.add_column("Id", style="cyan")
    nodes.add_column("Type", style="bold")
    nodes.add_column("Label")
    nodes.add_column("Runner", style="magenta")
    nodes.add_column("Steps", justify="right")
    nodes.add_column("Matrix", justify="right")
    for node in graph.nodes:
        data = node.data
        if isinstance(data, JobNodeData):
            nodes.add_row(
                escape(node.id),
                node.type,
                escape(data.label),
                escape(data.runs_on),
                str(data.step_count),
                str(data.matrix_combinations) if data.has_matrix else "-",
            )
        elif isinstance(data, TriggerNodeData):
            label = "; ".join(format_trigger(t) for t in data.triggers) or "(none)"
            nodes.add_row(node.id, node.type, escape(label), "-", "-", "-")
        elif isinstance(data, AddJobNodeData):
            label = f"needs: {', '.join(data.needs)}" if data.needs else "-"
            nodes.add_row(node.id, node.type, escape(label), "-", "-", "-")
    console.print(nodes)

    edges = Table(title="Edges")
    edges.add_column("Source", style="cyan")
    edges.add_column("Target", style="cyan")
    for edge in graph.edges:
        edges.add_row(escape(edge.source), escape(edge.target))
    console.print(edges)
    return 0


def dispatch(args: argparse.Namespace) -> int:
    """Dispatch to the appropriate workflow command handler."""
    if args.workflow_action == "validate":
        return cmd_validate(args)
    elif args.workflow_action == "fmt":
        return cmd_fmt(args)
    elif args.workflow_action == "graph":
        return cmd_graph(args)
    else:
        console.print(f"[red]Unknown workflow action: {args.workflow_action}[/red]")
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for workflow commands."""
    parser = build_workflow_parser()
    args = parser.parse_args(argv)

    try:
        cfg = load_and_validate_config()
    except ValidationError as e:
        show_error("Invalid configuration", str(e))
        return 2
    configure_logging(
        cfg.log_level,
        log_file=cfg.log_file,
        max_bytes=cfg.max_log_file_bytes,
        backup_count=cfg.log_backup_count,
        json_format=args.json_logs,
    )
    LOGGER.debug("Running %s", args.workflow_action)
    return dispatch(args)


if __name__ == "__main__":
    sys.exit(main())
