# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Pure structural edits.

Every function takes the current :class:`Workflow` snapshot and returns a new
one; the input is never mutated. Unknown job ids and out-of-range indices
raise ``KeyError``/``IndexError``; invalid arguments raise ``ValueError``.
"""

import copy
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from wflow_common.constants import (
    DEFAULT_FILENAME,
    DEFAULT_STEP_RUN,
    DEFAULT_TRIGGER_BRANCH,
    DEFAULT_TRIGGER_EVENT,
    JOB_ID_PATTERN,
    UNTITLED_WORKFLOW,
)

from ..config import get_config
from .model import ConfigBag, Job, Step, Strategy, Workflow, collapse_needs
from .triggers import ParsedTrigger, parse_triggers, triggers_to_on

LOGGER = logging.getLogger(__name__)

WORKFLOW_FIELDS = ("name", "run-name", "env")
JOB_FIELDS = ("name", "runs-on", "needs", "strategy")
STEP_FIELDS = ("name", "uses", "run", "with")


def _default_runner() -> str:
    return get_config().default_runner


def new_workflow() -> Workflow:
    """An empty document: no name, no triggers, no jobs."""
    return Workflow(name=None, on={}, jobs={})


def sample_workflow() -> Workflow:
    """Built-in sample with a build job and a dependent test job."""
    return Workflow(
        name="Sample",
        on={DEFAULT_TRIGGER_EVENT: {"branches": [DEFAULT_TRIGGER_BRANCH]}},
        jobs={
            "build": Job(
                runs_on=_default_runner(),
                steps=[Step(name="Build", run="echo build")],
            ),
            "test": Job(
                runs_on=_default_runner(),
                needs="build",
                steps=[Step(name="Test", run="echo test")],
            ),
        },
    )


def next_job_id(workflow: Workflow) -> str:
    """First free id of the form ``job-N``."""
    n = 1
    while f"job-{n}" in workflow.jobs:
        n += 1
    return f"job-{n}"


def _require_job(workflow: Workflow, job_id: str) -> Job:
    if job_id not in workflow.jobs:
        raise KeyError(f"Unknown job '{job_id}'")
    return workflow.jobs[job_id]


def _require_known(workflow: Workflow, needs: Iterable[str]) -> List[str]:
    deps = list(dict.fromkeys(needs))
    unknown = [d for d in deps if d not in workflow.jobs]
    if unknown:
        raise ValueError(f"Unknown dependencies: {', '.join(unknown)}")
    return deps


def _name_new_document(original: Workflow, result: Workflow) -> None:
    # The first trigger or job added to a blank document also names it
    if original.is_empty and not result.name:
        result.name = UNTITLED_WORKFLOW


def _scalar_text(key: str, value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, (dict, list)):
        raise ValueError(f"{key} must be a string")
    return value if isinstance(value, str) else str(value)


def add_job(
    workflow: Workflow, needs: Optional[List[str]] = None, job_id: Optional[str] = None
) -> Workflow:
    """Append a new job with the default runner and a single greeting step.

    When the document has no triggers yet, a ``push`` trigger on ``main`` is
    added as well so the new job is reachable. A blank document is also
    given the name ``Untitled Workflow``.
    """
    result = copy.deepcopy(workflow)
    deps = _require_known(result, needs or [])
    job_id = job_id or next_job_id(result)
    if job_id in result.jobs:
        raise ValueError(f"Job '{job_id}' already exists")
    if not JOB_ID_PATTERN.match(job_id):
        raise ValueError(f"Invalid job id '{job_id}'")

    if not parse_triggers(result.on):
        result.on = {DEFAULT_TRIGGER_EVENT: {"branches": [DEFAULT_TRIGGER_BRANCH]}}

    result.jobs[job_id] = Job(
        runs_on=_default_runner(),
        needs=collapse_needs(deps),
        steps=[Step(run=DEFAULT_STEP_RUN)],
    )
    _name_new_document(workflow, result)
    LOGGER.debug("Added job %s (needs=%s)", job_id, deps)
    return result


def delete_job(workflow: Workflow, job_id: str) -> Workflow:
    """Remove a job and strip it from every other job's dependencies."""
    _require_job(workflow, job_id)
    result = copy.deepcopy(workflow)
    del result.jobs[job_id]
    for job in result.jobs.values():
        if job_id in job.needs_list:
            job.needs = collapse_needs([n for n in job.needs_list if n != job_id])
    LOGGER.debug("Deleted job %s", job_id)
    return result


def rename_job(workflow: Workflow, old_id: str, new_id: str) -> Workflow:
    """Change a job id in place, keeping its position and rewriting dependants."""
    _require_job(workflow, old_id)
    if new_id == old_id:
        return copy.deepcopy(workflow)
    if not JOB_ID_PATTERN.match(new_id):
        raise ValueError(f"Invalid job id '{new_id}'")
    if new_id in workflow.jobs:
        raise ValueError(f"Job '{new_id}' already exists")

    result = copy.deepcopy(workflow)
    result.jobs = {(new_id if k == old_id else k): v for k, v in result.jobs.items()}
    for job in result.jobs.values():
        if old_id in job.needs_list:
            job.needs = collapse_needs([new_id if n == old_id else n for n in job.needs_list])
    return result


def rename_workflow(workflow: Workflow, name: Optional[str]) -> Workflow:
    result = copy.deepcopy(workflow)
    result.name = name if name else None
    return result


def set_workflow_field(workflow: Workflow, key: str, value: Any) -> Workflow:
    """Set (or clear, with ``None``) a top-level ``name``, ``run-name`` or ``env``."""
    if key not in WORKFLOW_FIELDS:
        raise ValueError(f"Unsupported workflow field '{key}'")
    if key == "env" and value is not None and not isinstance(value, dict):
        raise ValueError("env must be a mapping")
    result = copy.deepcopy(workflow)
    if key == "name":
        result.name = value if value else None
    elif key == "run-name":
        result.run_name = value if value else None
    else:
        result.env = dict(value) if value else None
    return result


def _triggers(workflow: Workflow) -> List[ParsedTrigger]:
    return parse_triggers(workflow.on)


def add_trigger(
    workflow: Workflow, event: str = DEFAULT_TRIGGER_EVENT, config: Optional[ConfigBag] = None
) -> Workflow:
    if not event:
        raise ValueError("Trigger event must not be empty")
    triggers = _triggers(workflow)
    triggers.append(ParsedTrigger(event, copy.deepcopy(config) if config else {}))
    result = copy.deepcopy(workflow)
    result.on = triggers_to_on(triggers)
    _name_new_document(workflow, result)
    LOGGER.debug("Added trigger %s", event)
    return result


def delete_trigger(workflow: Workflow, index: int) -> Workflow:
    triggers = _triggers(workflow)
    if not 0 <= index < len(triggers):
        raise IndexError(f"Trigger index {index} out of range")
    del triggers[index]
    result = copy.deepcopy(workflow)
    result.on = triggers_to_on(triggers)
    return result


def set_trigger_config(
    workflow: Workflow, index: int, event: str, config: Optional[ConfigBag] = None
) -> Workflow:
    """Replace the trigger at ``index`` (in normalized list order)."""
    if not event:
        raise ValueError("Trigger event must not be empty")
    triggers = _triggers(workflow)
    if not 0 <= index < len(triggers):
        raise IndexError(f"Trigger index {index} out of range")
    # Empty values are dropped so the collapsed form stays compact
    cleaned = {k: copy.deepcopy(v) for k, v in (config or {}).items() if v not in (None, "", [])}
    triggers[index] = ParsedTrigger(event, cleaned)
    result = copy.deepcopy(workflow)
    result.on = triggers_to_on(triggers)
    return result


def set_job_field(workflow: Workflow, job_id: str, key: str, value: Any) -> Workflow:
    """Set (or clear, with ``None``) one job field by its on-disk key."""
    _require_job(workflow, job_id)
    if key not in JOB_FIELDS:
        raise ValueError(f"Unsupported job field '{key}'")
    if key == "needs":
        return set_job_needs(workflow, job_id, [] if value is None else _as_list(value))

    result = copy.deepcopy(workflow)
    job = result.jobs[job_id]
    if key == "name":
        job.name = _scalar_text(key, value)
    elif key == "runs-on":
        if isinstance(value, (dict, list)):
            job.runs_on = copy.deepcopy(value)
        else:
            job.runs_on = _scalar_text(key, value)
    else:
        job.strategy = _as_strategy(value)
    return result


def _as_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _as_strategy(value: Any) -> Optional[Strategy]:
    if value is None or isinstance(value, Strategy):
        return copy.deepcopy(value)
    if not isinstance(value, dict):
        raise ValueError("strategy must be a mapping")
    known = ("matrix", "fail-fast", "max-parallel")
    return Strategy(
        matrix=copy.deepcopy(value.get("matrix")),
        fail_fast=value.get("fail-fast"),
        max_parallel=value.get("max-parallel"),
        extra={k: copy.deepcopy(v) for k, v in value.items() if k not in known},
    )


def set_job_needs(workflow: Workflow, job_id: str, needs: List[str]) -> Workflow:
    _require_job(workflow, job_id)
    deps = _require_known(workflow, needs)
    if job_id in deps:
        raise ValueError(f"Job '{job_id}' cannot depend on itself")
    result = copy.deepcopy(workflow)
    result.jobs[job_id].needs = collapse_needs(deps)
    return result


def add_dependency(workflow: Workflow, job_id: str, dependency: str) -> Workflow:
    job = _require_job(workflow, job_id)
    return set_job_needs(workflow, job_id, job.needs_list + [dependency])


def remove_dependency(workflow: Workflow, job_id: str, dependency: str) -> Workflow:
    job = _require_job(workflow, job_id)
    result = copy.deepcopy(workflow)
    result.jobs[job_id].needs = collapse_needs([n for n in job.needs_list if n != dependency])
    return result


def _step_run(value: Any) -> Optional[str]:
    # An empty run command is kept; the linter flags it
    if value == "":
        return value
    return _scalar_text("run", value)


def _step_from(fields: Dict[str, Any]) -> Step:
    unknown = [k for k in fields if k not in STEP_FIELDS]
    if unknown:
        raise ValueError(f"Unsupported step fields: {', '.join(unknown)}")
    return Step(
        name=_scalar_text("name", fields.get("name")),
        uses=_scalar_text("uses", fields.get("uses")),
        run=_step_run(fields.get("run")),
        with_=copy.deepcopy(fields.get("with")) or None,
    )


def add_step(
    workflow: Workflow, job_id: str, step: Optional[Dict[str, Any]] = None
) -> Workflow:
    """Append a step; defaults to the greeting ``run`` step."""
    _require_job(workflow, job_id)
    new_step = _step_from(step) if step else Step(run=DEFAULT_STEP_RUN)
    result = copy.deepcopy(workflow)
    result.jobs[job_id].steps.append(new_step)
    return result


def update_step(workflow: Workflow, job_id: str, index: int, **fields: Any) -> Workflow:
    """Update step fields by on-disk key; use ``with_`` for ``with``.

    A value of ``None`` clears the field.
    """
    job = _require_job(workflow, job_id)
    if not 0 <= index < len(job.steps):
        raise IndexError(f"Step index {index} out of range for job '{job_id}'")
    result = copy.deepcopy(workflow)
    step = result.jobs[job_id].steps[index]
    for key, value in fields.items():
        attr = "with_" if key in ("with", "with_") else key
        if attr not in ("name", "uses", "run", "with_"):
            raise ValueError(f"Unsupported step field '{key}'")
        if attr == "with_":
            step.with_ = copy.deepcopy(value) or None
        elif attr == "run":
            step.run = _step_run(value)
        else:
            setattr(step, attr, _scalar_text(key, value))
    return result


def delete_step(workflow: Workflow, job_id: str, index: int) -> Workflow:
    job = _require_job(workflow, job_id)
    if not 0 <= index < len(job.steps):
        raise IndexError(f"Step index {index} out of range for job '{job_id}'")
    result = copy.deepcopy(workflow)
    del result.jobs[job_id].steps[index]
    return result


def move_step(workflow: Workflow, job_id: str, index: int, new_index: int) -> Workflow:
    job = _require_job(workflow, job_id)
    count = len(job.steps)
    if not 0 <= index < count or not 0 <= new_index < count:
        raise IndexError(f"Step index out of range for job '{job_id}'")
    result = copy.deepcopy(workflow)
    steps = result.jobs[job_id].steps
    steps.insert(new_index, steps.pop(index))
    return result


def default_filename(workflow: Workflow) -> str:
    """Save-file name derived from the workflow name, e.g. ``my-ci.yml``."""
    if not workflow.name or not workflow.name.strip():
        return get_config().default_filename or DEFAULT_FILENAME
    return re.sub(r"\s+", "-", workflow.name.strip()).lower() + ".yml"
