# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Tolerant text -> :class:`Workflow` parser.

``parse_workflow`` never raises for bad input. It always returns a usable
document together with a list of human-readable error strings:

- YAML syntax errors yield an empty document and a single
  ``"YAML parse error: ..."`` message.
- Self-referencing aliases (``x: &a [*a]``) are rejected the same way.
- A root that is not a mapping yields an empty document and
  ``"Invalid workflow: root must be an object"``.
- A malformed job is reported as ``Job "<id>": ...`` and dropped; sibling
  jobs are unaffected.
- Steps are accepted in any shape; non-mapping entries become placeholder
  ``run`` steps named ``Step <n>``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

import yaml

from .model import (
    JOB_KEYS,
    STEP_KEYS,
    STRATEGY_KEYS,
    WORKFLOW_KEYS,
    Job,
    Needs,
    RunsOn,
    Step,
    Strategy,
    Workflow,
)
from .yamlio import load_yaml

LOGGER = logging.getLogger(__name__)

ROOT_NOT_OBJECT = "Invalid workflow: root must be an object"
YAML_PARSE_ERROR = "YAML parse error"
RECURSIVE_ALIAS = f"{YAML_PARSE_ERROR}: recursive aliases are not supported"


@dataclass
class ParseResult:
    workflow: Workflow
    errors: List[str] = field(default_factory=list)

    @property
    def is_blocking(self) -> bool:
        """True when the text could not be turned into a document at all."""
        return any(e.startswith(YAML_PARSE_ERROR) or e == ROOT_NOT_OBJECT for e in self.errors)


class _JobError(ValueError):
    pass


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _extra(data: Dict[str, Any], known: tuple) -> Dict[str, Any]:
    return {str(k): v for k, v in data.items() if k not in known}


def _is_recursive(node: Any, active: Set[int], done: Set[int]) -> bool:
    if not isinstance(node, (dict, list)) or id(node) in done:
        return False
    if id(node) in active:
        return True
    active.add(id(node))
    children = node.values() if isinstance(node, dict) else node
    found = any(_is_recursive(child, active, done) for child in children)
    active.discard(id(node))
    done.add(id(node))
    return found


def _parse_step(index: int, raw: Any) -> Step:
    if not isinstance(raw, dict):
        return Step(name=f"Step {index + 1}", run="")
    with_ = raw.get("with")
    extra = _extra(raw, STEP_KEYS)
    if with_ is not None and not isinstance(with_, dict):
        # Keep odd shapes verbatim; the linter has the final say
        extra["with"] = with_
        with_ = None
    return Step(
        name=_text(raw.get("name")),
        uses=_text(raw.get("uses")),
        run=_text(raw.get("run")),
        with_=dict(with_) if with_ is not None else None,
        extra=extra,
    )


def _parse_needs(value: Any) -> Optional[Needs]:
    if value is None:
        return None
    if isinstance(value, list):
        return [str(v) for v in value if v is not None]
    return str(value)


def _parse_runs_on(value: Any) -> Optional[RunsOn]:
    if value is None:
        return None
    if isinstance(value, list):
        return [str(v) for v in value]
    if isinstance(value, dict):
        return dict(value)
    return str(value)


def _parse_strategy(value: Any) -> Strategy:
    if not isinstance(value, dict):
        raise _JobError('"strategy" must be a mapping')
    return Strategy(
        matrix=value.get("matrix"),
        fail_fast=value.get("fail-fast"),
        max_parallel=value.get("max-parallel"),
        extra=_extra(value, STRATEGY_KEYS),
    )


def _parse_job(raw: Any) -> Job:
    if not isinstance(raw, dict):
        raise _JobError(f"must be a mapping, got {type(raw).__name__}")

    raw_steps = raw.get("steps")
    if raw_steps is None:
        raw_steps = []
    elif not isinstance(raw_steps, list):
        raise _JobError('"steps" must be a list')

    strategy = _parse_strategy(raw["strategy"]) if raw.get("strategy") is not None else None
    return Job(
        name=_text(raw.get("name")),
        runs_on=_parse_runs_on(raw.get("runs-on")),
        needs=_parse_needs(raw.get("needs")),
        steps=[_parse_step(i, s) for i, s in enumerate(raw_steps)],
        strategy=strategy,
        extra=_extra(raw, JOB_KEYS),
    )


def _empty_workflow() -> Workflow:
    return Workflow(name=None, on={}, jobs={})


def parse_workflow(text: str) -> ParseResult:
    """Parse workflow markup. Never raises for malformed input."""
    try:
        data = load_yaml(text)
    except yaml.YAMLError as exc:
        LOGGER.debug("YAML syntax error: %s", exc)
        return ParseResult(_empty_workflow(), [f"{YAML_PARSE_ERROR}: {exc}"])

    if data is None:
        data = {}
    if not isinstance(data, dict):
        return ParseResult(_empty_workflow(), [ROOT_NOT_OBJECT])
    if _is_recursive(data, set(), set()):
        return ParseResult(_empty_workflow(), [RECURSIVE_ALIAS])

    errors: List[str] = []
    workflow = Workflow(
        name=_text(data.get("name")),
        run_name=_text(data.get("run-name")),
        on=data.get("on") if data.get("on") is not None else {},
        extra=_extra(data, WORKFLOW_KEYS),
    )

    env = data.get("env")
    if env is not None:
        if isinstance(env, dict):
            workflow.env = {str(k): v for k, v in env.items()}
        else:
            errors.append('Invalid workflow: "env" must be a mapping')

    if "jobs" not in data or data["jobs"] is None:
        errors.append('Invalid workflow: "jobs" is required')
        return ParseResult(workflow, errors)
    raw_jobs = data["jobs"]
    if not isinstance(raw_jobs, dict):
        errors.append('Invalid workflow: "jobs" must be a mapping')
        return ParseResult(workflow, errors)

    for raw_id, raw_job in raw_jobs.items():
        job_id = str(raw_id)
        try:
            workflow.jobs[job_id] = _parse_job(raw_job)
        except _JobError as exc:
            LOGGER.debug("Dropping job %s: %s", job_id, exc)
            errors.append(f'Job "{job_id}": {exc}')

    return ParseResult(workflow, errors)
