# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import copy
import os
from unittest.mock import patch

import pytest

from wflow_core.workflow import edits
from wflow_core.workflow.model import Job, Step, Strategy, Workflow
from wflow_core.workflow.parser import parse_workflow
from wflow_core.workflow.serializer import serialize_workflow
from wflow_core.workflow.triggers import ParsedTrigger, parse_triggers


def _two_jobs() -> Workflow:
    return Workflow(
        name="CI",
        on="push",
        jobs={
            "build": Job(runs_on="ubuntu-latest", steps=[Step(run="make")]),
            "test": Job(runs_on="ubuntu-latest", needs="build", steps=[Step(run="make test")]),
        },
    )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


def test_new_workflow_is_empty():
    workflow = edits.new_workflow()
    assert workflow.is_empty
    assert workflow.name is None


def test_sample_workflow():
    sample = edits.sample_workflow()
    assert sample.name == "Sample"
    assert sample.on == {"push": {"branches": ["main"]}}
    assert list(sample.jobs) == ["build", "test"]
    assert sample.jobs["build"].steps[0].run == "echo build"
    assert sample.jobs["test"].needs == "build"
    assert sample.jobs["test"].steps[0].run == "echo test"


def test_next_job_id_fills_first_gap():
    workflow = Workflow(jobs={"job-1": Job(), "job-3": Job()})
    assert edits.next_job_id(workflow) == "job-2"
    assert edits.next_job_id(Workflow()) == "job-1"


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


class TestAddJob:
    def test_seeds_trigger_on_empty_document(self):
        workflow = edits.add_job(edits.new_workflow())
        assert workflow.on == {"push": {"branches": ["main"]}}
        assert workflow.name == "Untitled Workflow"
        job = workflow.jobs["job-1"]
        assert job.runs_on == "ubuntu-latest"
        assert job.steps == [Step(run='echo "Hello, World!"')]
        assert job.needs is None

    def test_keeps_existing_name(self):
        named = edits.rename_workflow(edits.new_workflow(), "Release")
        assert edits.add_job(named).name == "Release"
        assert edits.add_job(_two_jobs()).name == "CI"

    def test_keeps_existing_triggers(self):
        workflow = edits.add_job(_two_jobs())
        assert workflow.on == "push"
        assert list(workflow.jobs)[-1] == "job-1"

    def test_single_dependency_collapses_to_string(self):
        workflow = edits.add_job(_two_jobs(), needs=["test"])
        assert workflow.jobs["job-1"].needs == "test"

    def test_multiple_dependencies_stay_a_list(self):
        workflow = edits.add_job(_two_jobs(), needs=["build", "test", "build"])
        assert workflow.jobs["job-1"].needs == ["build", "test"]

    def test_unknown_dependency_raises(self):
        with pytest.raises(ValueError, match="ghost"):
            edits.add_job(_two_jobs(), needs=["ghost"])

    def test_explicit_id(self):
        assert "deploy" in edits.add_job(_two_jobs(), job_id="deploy").jobs
        with pytest.raises(ValueError):
            edits.add_job(_two_jobs(), job_id="build")

    def test_uses_configured_runner(self):
        with patch.dict(os.environ, {"WFLOW_DEFAULT_RUNNER": "self-hosted"}):
            workflow = edits.add_job(edits.new_workflow())
        assert workflow.jobs["job-1"].runs_on == "self-hosted"

    def test_does_not_mutate_input(self):
        original = _two_jobs()
        before = copy.deepcopy(original)
        edits.add_job(original, needs=["build"])
        assert original == before


class TestDeleteJob:
    def test_strips_dependants(self):
        workflow = edits.add_job(_two_jobs(), needs=["build", "test"])
        workflow = edits.delete_job(workflow, "build")
        assert list(workflow.jobs) == ["test", "job-1"]
        assert workflow.jobs["test"].needs is None
        assert workflow.jobs["job-1"].needs == "test"

    def test_unknown_job_raises(self):
        with pytest.raises(KeyError):
            edits.delete_job(_two_jobs(), "ghost")

    def test_does_not_mutate_input(self):
        original = _two_jobs()
        edits.delete_job(original, "build")
        assert "build" in original.jobs
        assert original.jobs["test"].needs == "build"


class TestRenameJob:
    def test_keeps_position_and_rewrites_needs(self):
        workflow = edits.rename_job(_two_jobs(), "build", "compile")
        assert list(workflow.jobs) == ["compile", "test"]
        assert workflow.jobs["test"].needs == "compile"

    @pytest.mark.parametrize("new_id", ["test", "9lives", "has space"])
    def test_rejects_bad_ids(self, new_id):
        with pytest.raises(ValueError):
            edits.rename_job(_two_jobs(), "build", new_id)


def test_set_job_field_name_and_runner():
    workflow = edits.set_job_field(_two_jobs(), "build", "name", "Build")
    workflow = edits.set_job_field(workflow, "build", "runs-on", ["self-hosted", "linux"])
    assert workflow.jobs["build"].name == "Build"
    assert workflow.jobs["build"].runs_on == ["self-hosted", "linux"]
    workflow = edits.set_job_field(workflow, "build", "name", "")
    assert workflow.jobs["build"].name is None


def test_scalar_job_fields_are_stored_as_text():
    workflow = edits.set_job_field(_two_jobs(), "build", "name", 5)
    workflow = edits.set_job_field(workflow, "build", "runs-on", 42)
    assert workflow.jobs["build"].name == "5"
    assert workflow.jobs["build"].runs_on == "42"
    assert parse_workflow(serialize_workflow(workflow)).workflow == workflow


def test_set_job_field_name_rejects_collections():
    with pytest.raises(ValueError):
        edits.set_job_field(_two_jobs(), "build", "name", ["a"])


def test_set_job_field_strategy():
    workflow = edits.set_job_field(
        _two_jobs(), "test", "strategy", {"matrix": {"py": ["3.11"]}, "max-parallel": 1}
    )
    assert workflow.jobs["test"].strategy == Strategy(matrix={"py": ["3.11"]}, max_parallel=1)
    workflow = edits.set_job_field(workflow, "test", "strategy", None)
    assert workflow.jobs["test"].strategy is None


def test_set_job_field_rejects_unknown_key():
    with pytest.raises(ValueError):
        edits.set_job_field(_two_jobs(), "build", "steps", [])
    with pytest.raises(KeyError):
        edits.set_job_field(_two_jobs(), "ghost", "name", "x")


class TestDependencies:
    def test_add_and_remove(self):
        workflow = edits.add_job(_two_jobs(), job_id="deploy")
        workflow = edits.add_dependency(workflow, "deploy", "build")
        assert workflow.jobs["deploy"].needs == "build"
        workflow = edits.add_dependency(workflow, "deploy", "test")
        assert workflow.jobs["deploy"].needs == ["build", "test"]
        workflow = edits.remove_dependency(workflow, "deploy", "build")
        assert workflow.jobs["deploy"].needs == "test"
        workflow = edits.remove_dependency(workflow, "deploy", "test")
        assert workflow.jobs["deploy"].needs is None

    def test_self_dependency_rejected(self):
        with pytest.raises(ValueError):
            edits.set_job_needs(_two_jobs(), "build", ["build"])

    def test_set_job_field_needs(self):
        workflow = edits.set_job_field(_two_jobs(), "test", "needs", None)
        assert workflow.jobs["test"].needs is None


# ---------------------------------------------------------------------------
# Workflow fields
# ---------------------------------------------------------------------------


def test_rename_workflow():
    assert edits.rename_workflow(_two_jobs(), "Release").name == "Release"
    assert edits.rename_workflow(_two_jobs(), "").name is None


def test_set_workflow_field():
    workflow = edits.set_workflow_field(_two_jobs(), "run-name", "Deploy by @me")
    workflow = edits.set_workflow_field(workflow, "env", {"CI": "1"})
    assert workflow.run_name == "Deploy by @me"
    assert workflow.env == {"CI": "1"}
    with pytest.raises(ValueError):
        edits.set_workflow_field(workflow, "jobs", {})
    with pytest.raises(ValueError):
        edits.set_workflow_field(workflow, "env", "not a mapping")


# ---------------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------------


class TestTriggers:
    def test_add_trigger_defaults_to_push(self):
        workflow = edits.add_trigger(edits.new_workflow())
        assert workflow.on == "push"
        assert workflow.name == "Untitled Workflow"

    def test_add_second_trigger_becomes_list(self):
        workflow = edits.add_trigger(_two_jobs(), "workflow_dispatch")
        assert workflow.on == ["push", "workflow_dispatch"]

    def test_schedule_merges(self):
        workflow = edits.add_trigger(_two_jobs(), "schedule", {"cron": "0 0 * * *"})
        workflow = edits.add_trigger(workflow, "schedule", {"cron": "0 6 * * *"})
        assert workflow.on == ["push", {"schedule": [{"cron": "0 0 * * *"}, {"cron": "0 6 * * *"}]}]

    def test_delete_trigger(self):
        workflow = edits.add_trigger(_two_jobs(), "workflow_dispatch")
        workflow = edits.delete_trigger(workflow, 0)
        assert workflow.on == "workflow_dispatch"
        with pytest.raises(IndexError):
            edits.delete_trigger(workflow, 5)

    def test_set_trigger_config(self):
        workflow = edits.set_trigger_config(
            _two_jobs(), 0, "pull_request", {"types": ["opened"], "branches": []}
        )
        assert parse_triggers(workflow.on) == [ParsedTrigger("pull_request", {"types": ["opened"]})]

    def test_set_trigger_config_bad_index(self):
        with pytest.raises(IndexError):
            edits.set_trigger_config(_two_jobs(), 3, "push")

    def test_empty_event_rejected(self):
        with pytest.raises(ValueError):
            edits.add_trigger(_two_jobs(), "")

    @pytest.mark.parametrize(
        "edit, args",
        [
            (edits.add_trigger, ("pull_request",)),
            (edits.delete_trigger, (1,)),
            (edits.set_trigger_config, (1, "workflow_dispatch")),
        ],
    )
    def test_nested_config_is_not_shared(self, edit, args):
        original = Workflow(
            on={"push": {"branches": ["main"]}, "pull_request": {"types": ["opened"]}},
            jobs=_two_jobs().jobs,
        )
        before = copy.deepcopy(original)
        result = edit(original, *args)
        push = next(t for t in parse_triggers(result.on) if t.event == "push")
        assert push.config == {"branches": ["main"]}
        entry = result.on[0] if isinstance(result.on, list) else result.on
        entry["push"]["branches"].append("dev")
        assert original == before


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


class TestSteps:
    def test_add_default_step(self):
        workflow = edits.add_step(_two_jobs(), "build")
        assert workflow.jobs["build"].steps[-1] == Step(run='echo "Hello, World!"')

    def test_add_step_with_fields(self):
        workflow = edits.add_step(
            _two_jobs(), "build", {"uses": "actions/setup-python@v5", "with": {"python-version": "3.12"}}
        )
        step = workflow.jobs["build"].steps[-1]
        assert step.uses == "actions/setup-python@v5"
        assert step.with_ == {"python-version": "3.12"}

    def test_add_step_rejects_unknown_fields(self):
        with pytest.raises(ValueError):
            edits.add_step(_two_jobs(), "build", {"shell": "bash"})

    def test_update_step(self):
        workflow = edits.update_step(_two_jobs(), "build", 0, name="Make", run="make all")
        assert workflow.jobs["build"].steps[0] == Step(name="Make", run="make all")
        workflow = edits.update_step(workflow, "build", 0, name=None)
        assert workflow.jobs["build"].steps[0].name is None

    def test_scalar_step_fields_are_stored_as_text(self):
        workflow = edits.update_step(_two_jobs(), "build", 0, name=1, run=2)
        assert workflow.jobs["build"].steps[0] == Step(name="1", run="2")
        workflow = edits.add_step(workflow, "build", {"uses": 3})
        assert workflow.jobs["build"].steps[-1].uses == "3"
        assert parse_workflow(serialize_workflow(workflow)).workflow == workflow

    def test_empty_run_is_kept(self):
        workflow = edits.update_step(_two_jobs(), "build", 0, run="")
        assert workflow.jobs["build"].steps[0].run == ""

    def test_update_step_bad_index(self):
        with pytest.raises(IndexError):
            edits.update_step(_two_jobs(), "build", 4, run="x")

    def test_delete_and_move(self):
        workflow = edits.add_step(_two_jobs(), "build", {"run": "second"})
        workflow = edits.add_step(workflow, "build", {"run": "third"})
        workflow = edits.move_step(workflow, "build", 2, 0)
        assert [s.run for s in workflow.jobs["build"].steps] == ["third", "make", "second"]
        workflow = edits.delete_step(workflow, "build", 1)
        assert [s.run for s in workflow.jobs["build"].steps] == ["third", "second"]


# ---------------------------------------------------------------------------
# File naming
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "name, expected",
    [
        ("CI", "ci.yml"),
        ("My  Release Pipeline", "my-release-pipeline.yml"),
        ("", "workflow.yml"),
        (None, "workflow.yml"),
        ("   ", "workflow.yml"),
    ],
)
def test_default_filename(name, expected):
    assert edits.default_filename(Workflow(name=name)) == expected
