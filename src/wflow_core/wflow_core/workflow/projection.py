# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Project a :class:`Workflow` onto graph nodes and edges.

The projection is recomputed from scratch on every call. Node ids are derived
from job ids plus two fixed sentinels, so a renderer can match nodes across
recomputations.
"""

from dataclasses import dataclass, field
from typing import List, Literal, Optional, Set, Union

from wflow_common.constants import ADD_JOB_NODE_ID, DEFAULT_RUNNER, TRIGGER_NODE_ID

from .model import Job, RunsOn, Workflow, matrix_combinations
from .triggers import ParsedTrigger, parse_triggers

NodeType = Literal["trigger", "job", "addJob"]


@dataclass
class TriggerNodeData:
    triggers: List[ParsedTrigger] = field(default_factory=list)


@dataclass
class JobNodeData:
    job_id: str
    label: str
    runs_on: str
    step_count: int
    matrix_combinations: Optional[int] = None
    needs: List[str] = field(default_factory=list)

    @property
    def has_matrix(self) -> bool:
        return self.matrix_combinations is not None


@dataclass
class AddJobNodeData:
    # Dependencies the new job gets when created from this affordance
    needs: List[str] = field(default_factory=list)


NodeData = Union[TriggerNodeData, JobNodeData, AddJobNodeData]


@dataclass
class FlowNode:
    id: str
    type: NodeType
    data: NodeData


@dataclass
class FlowEdge:
    source: str
    target: str

    @property
    def id(self) -> str:
        return f"{self.source}->{self.target}"


@dataclass
class FlowGraph:
    nodes: List[FlowNode] = field(default_factory=list)
    edges: List[FlowEdge] = field(default_factory=list)

    def node(self, node_id: str) -> Optional[FlowNode]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    @property
    def job_nodes(self) -> List[FlowNode]:
        return [n for n in self.nodes if n.type == "job"]


def runner_label(runs_on: Optional[RunsOn]) -> str:
    """Display label for a ``runs-on`` value.

    Lists are joined with commas; a ``{group, labels}`` mapping shows the
    group followed by its labels. Missing or blank values fall back to the
    default runner.
    """
    if isinstance(runs_on, str):
        return runs_on.strip() or DEFAULT_RUNNER
    if isinstance(runs_on, list):
        label = ", ".join(str(r) for r in runs_on if r is not None)
        return label or DEFAULT_RUNNER
    if isinstance(runs_on, dict):
        parts = []
        if runs_on.get("group"):
            parts.append(str(runs_on["group"]))
        labels = runs_on.get("labels")
        if isinstance(labels, list):
            parts.extend(str(label) for label in labels)
        elif labels:
            parts.append(str(labels))
        return ", ".join(parts) or DEFAULT_RUNNER
    return DEFAULT_RUNNER


def _job_node(job_id: str, job: Job) -> FlowNode:
    data = JobNodeData(
        job_id=job_id,
        label=job.name or job_id,
        runs_on=runner_label(job.runs_on),
        step_count=len(job.steps),
        matrix_combinations=matrix_combinations(job.strategy),
        needs=job.needs_list,
    )
    return FlowNode(id=job_id, type="job", data=data)


def leaf_jobs(workflow: Workflow) -> List[str]:
    """Job ids no other job depends on, in document order."""
    depended_on: Set[str] = set()
    for job in workflow.jobs.values():
        depended_on.update(job.needs_list)
    return [job_id for job_id in workflow.jobs if job_id not in depended_on]


def workflow_to_flow(workflow: Workflow) -> FlowGraph:
    graph = FlowGraph()
    graph.nodes.append(
        FlowNode(
            id=TRIGGER_NODE_ID, type="trigger", data=TriggerNodeData(parse_triggers(workflow.on))
        )
    )

    for job_id, job in workflow.jobs.items():
        graph.nodes.append(_job_node(job_id, job))
        sources = [n for n in job.needs_list if n in workflow.jobs]
        if not sources:
            # Jobs without a resolvable dependency hang off the trigger
            sources = [TRIGGER_NODE_ID]
        graph.edges.extend(FlowEdge(source=s, target=job_id) for s in sources)

    graph.nodes.append(
        FlowNode(id=ADD_JOB_NODE_ID, type="addJob", data=AddJobNodeData(leaf_jobs(workflow)))
    )
    return graph
