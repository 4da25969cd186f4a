# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Advisory diagnostics for a parsed workflow.

Lint never raises for malformed input and never blocks save or edit
operations. Each diagnostic names the offending key-path (for example
``jobs.build.steps[0].uses``) and, when the source text is available, a
1-based line number.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from wflow_common.constants import JOB_ID_PATTERN, SCHEDULE_EVENT
from wflow_common.validation import (
    closest,
    detect_cycle,
    extract_line_map,
    find_duplicate_keys,
    line_for_path,
)

from .model import Job, Step, Workflow
from .triggers import KNOWN_EVENTS, ignored_trigger_entries, parse_triggers

LOGGER = logging.getLogger(__name__)

# Refs that move with every push; pinning to them defeats the pin.
MOVING_REFS = frozenset({"main", "master"})


class IssueSeverity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class LintError:
    """A single lint diagnostic."""

    path: str
    message: str
    severity: IssueSeverity = IssueSeverity.ERROR
    line: Optional[int] = None
    suggestion: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity == IssueSeverity.ERROR

    def __str__(self) -> str:
        loc = self.path or "<root>"
        if self.line is not None:
            loc += f" (line {self.line})"
        msg = f"{loc}: {self.severity.value}: {self.message}"
        if self.suggestion:
            msg += f". Did you mean '{self.suggestion}'?"
        return msg


@dataclass
class LintReport:
    issues: List[LintError] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(i.is_error for i in self.issues)

    @property
    def errors(self) -> List[LintError]:
        return [i for i in self.issues if i.is_error]

    @property
    def warnings(self) -> List[LintError]:
        return [i for i in self.issues if not i.is_error]

    def add_error(self, path: str, message: str, suggestion: Optional[str] = None):
        self.issues.append(LintError(path, message, IssueSeverity.ERROR, suggestion=suggestion))

    def add_warning(self, path: str, message: str, suggestion: Optional[str] = None):
        self.issues.append(LintError(path, message, IssueSeverity.WARNING, suggestion=suggestion))


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return not value
    return False


class WorkflowLinter:
    """Runs every check over one workflow and collects a :class:`LintReport`."""

    def __init__(self, workflow: Workflow, source: Optional[str] = None):
        self.workflow = workflow
        self.source = source
        self.report = LintReport()

    def run(self) -> LintReport:
        self._check_triggers()
        self._check_jobs()
        self._check_dependencies()
        self._check_cycles()
        if self.source is not None:
            self._check_duplicate_keys(self.source)
            self._attach_lines(extract_line_map(self.source))
        return self.report

    def _check_triggers(self):
        for entry in ignored_trigger_entries(self.workflow.on):
            self.report.add_warning(
                "on",
                f"Ignoring trigger entry {entry!r}: expected an event name or a mapping; "
                "it will be dropped when triggers are edited",
            )
        triggers = parse_triggers(self.workflow.on)
        if not triggers:
            self.report.add_warning("on", "Workflow has no triggers and will never run")
            return

        seen_crons: Dict[str, int] = {}
        schedule_index = 0
        for trigger in triggers:
            if trigger.event not in KNOWN_EVENTS:
                self.report.add_warning(
                    "on",
                    f"Unknown trigger event '{trigger.event}'",
                    suggestion=closest(trigger.event, KNOWN_EVENTS),
                )
            if trigger.event != SCHEDULE_EVENT:
                continue
            cron = trigger.config.get("cron")
            if cron is not None:
                cron = str(cron).strip()
                if cron in seen_crons:
                    self.report.add_warning(
                        f"on.{SCHEDULE_EVENT}",
                        f"Duplicate cron expression '{cron}' "
                        f"(entries {seen_crons[cron] + 1} and {schedule_index + 1})",
                    )
                else:
                    seen_crons[cron] = schedule_index
            schedule_index += 1

    def _check_jobs(self):
        if not self.workflow.jobs:
            self.report.add_error("jobs", "Workflow must have at least one job")
            return
        for job_id, job in self.workflow.jobs.items():
            self._check_job(job_id, job)

    def _check_job(self, job_id: str, job: Job):
        path = f"jobs.{job_id}"
        if not JOB_ID_PATTERN.match(job_id):
            self.report.add_error(
                path,
                f"Invalid job id '{job_id}': must start with a letter or '_' and contain "
                "only letters, digits, '-' and '_'",
            )

        if job.calls_reusable_workflow:
            return

        if _is_blank(job.runs_on):
            self.report.add_warning(f"{path}.runs-on", f"Job '{job_id}' has no runner")

        if not job.steps:
            self.report.add_warning(f"{path}.steps", f"Job '{job_id}' has no steps")

        if job.strategy is not None and isinstance(job.strategy.matrix, dict):
            for axis, values in job.strategy.matrix.items():
                if isinstance(values, list) and not values:
                    self.report.add_warning(
                        f"{path}.strategy.matrix.{axis}",
                        f"Matrix axis '{axis}' is empty; the job will not run",
                    )

        step_ids: Dict[str, int] = {}
        for index, step in enumerate(job.steps):
            step_path = f"{path}.steps[{index}]"
            self._check_step(step_path, step)
            step_id = step.step_id
            if step_id is None:
                continue
            if step_id in step_ids:
                self.report.add_error(
                    f"{step_path}.id",
                    f"Duplicate step id '{step_id}' (already used by step {step_ids[step_id] + 1})",
                )
            else:
                step_ids[step_id] = index

    def _check_step(self, path: str, step: Step):
        if step.uses is not None and step.run is not None:
            self.report.add_error(path, "Step cannot have both 'uses' and 'run'")
        elif step.uses is None and step.run is None:
            self.report.add_error(path, "Step must have either 'uses' or 'run'")
        elif step.run is not None and not step.run.strip():
            self.report.add_warning(f"{path}.run", "Step has an empty 'run' command")

        if step.uses is not None:
            self._check_action_ref(f"{path}.uses", step.uses)

    def _check_action_ref(self, path: str, uses: str):
        if uses.startswith("./") or uses.startswith("docker://"):
            return
        if "@" not in uses:
            self.report.add_warning(path, f"Action '{uses}' is not pinned to a version")
            return
        ref = uses.rsplit("@", 1)[1]
        if ref in MOVING_REFS:
            self.report.add_warning(
                path, f"Action '{uses}' is pinned to the moving branch '{ref}'"
            )

    def _check_dependencies(self):
        job_ids = list(self.workflow.jobs)
        for job_id, job in self.workflow.jobs.items():
            for dep in job.needs_list:
                if dep in self.workflow.jobs:
                    continue
                candidates = [j for j in job_ids if j != job_id]
                self.report.add_error(
                    f"jobs.{job_id}.needs",
                    f"Job '{job_id}' depends on unknown job '{dep}'",
                    suggestion=closest(dep, candidates),
                )

    def _check_cycles(self):
        graph = {job_id: job.needs_list for job_id, job in self.workflow.jobs.items()}
        cycle = detect_cycle(graph)
        if cycle is None:
            return
        LOGGER.debug("Dependency cycle: %s", cycle)
        self.report.add_error(
            f"jobs.{cycle[0]}.needs", f"Dependency cycle detected: {' -> '.join(cycle)}"
        )

    def _check_duplicate_keys(self, source: str):
        for key_path, line in find_duplicate_keys(source):
            parts = key_path.split(".")
            if len(parts) == 2 and parts[0] == "jobs":
                message = f"Duplicate job id '{parts[1]}'"
                severity = IssueSeverity.ERROR
            else:
                message = f"Duplicate key '{parts[-1]}'; only the last value is kept"
                severity = IssueSeverity.WARNING
            self.report.issues.append(LintError(key_path, message, severity, line=line))

    def _attach_lines(self, line_map: Dict[str, int]):
        for issue in self.report.issues:
            if issue.line is None:
                issue.line = line_for_path(line_map, issue.path)


def lint_workflow(workflow: Workflow, source: Optional[str] = None) -> List[LintError]:
    """Lint ``workflow``; pass the original text as ``source`` to get line numbers."""
    return WorkflowLinter(workflow, source).run().issues
