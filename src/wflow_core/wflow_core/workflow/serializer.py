# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Model -> markup text, in a fixed canonical key order."""

from typing import Any, Dict

from .model import Job, Step, Strategy, Workflow
from .yamlio import dump_yaml


def _merge(out: Dict[str, Any], extra: Dict[str, Any]):
    for key, value in extra.items():
        if key not in out:
            out[key] = value


def _step_to_dict(step: Step) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if step.name is not None:
        out["name"] = step.name
    if step.uses is not None:
        out["uses"] = step.uses
    if step.run is not None:
        out["run"] = step.run
    if step.with_ is not None:
        out["with"] = step.with_
    _merge(out, step.extra)
    return out


def _strategy_to_dict(strategy: Strategy) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if strategy.matrix is not None:
        out["matrix"] = strategy.matrix
    if strategy.fail_fast is not None:
        out["fail-fast"] = strategy.fail_fast
    if strategy.max_parallel is not None:
        out["max-parallel"] = strategy.max_parallel
    _merge(out, strategy.extra)
    return out


def _job_to_dict(job: Job) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if job.name is not None:
        out["name"] = job.name
    if job.needs is not None:
        out["needs"] = job.needs
    if job.runs_on is not None:
        out["runs-on"] = job.runs_on
    if job.strategy is not None:
        out["strategy"] = _strategy_to_dict(job.strategy)
    _merge(out, job.extra)
    if job.steps:
        out["steps"] = [_step_to_dict(s) for s in job.steps]
    return out


def workflow_to_dict(workflow: Workflow) -> Dict[str, Any]:
    """Plain-data form of ``workflow`` with keys in canonical order."""
    out: Dict[str, Any] = {}
    if workflow.name is not None:
        out["name"] = workflow.name
    if workflow.run_name is not None:
        out["run-name"] = workflow.run_name
    out["on"] = workflow.on
    if workflow.env is not None:
        out["env"] = workflow.env
    _merge(out, workflow.extra)
    out["jobs"] = {job_id: _job_to_dict(job) for job_id, job in workflow.jobs.items()}
    return out


def serialize_workflow(workflow: Workflow) -> str:
    return dump_yaml(workflow_to_dict(workflow))
