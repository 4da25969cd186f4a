# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Typed document model for automation-pipeline workflows.

The model mirrors the on-disk document closely. Keys that are not valid Python
identifiers (``runs-on``, ``run-name``, ``fail-fast``, ...) are stored under
snake_case attributes; :data:`JOB_KEYS` and friends record the on-disk names
in canonical serialization order. Anything the model does not recognize is
kept in ``extra`` in encounter order so it survives a parse/serialize cycle.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

# Scalars, lists and nested mappings as produced by the YAML loader.
ConfigValue = Any
ConfigBag = Dict[str, ConfigValue]

# Raw trigger shape: bare event, list of events / single-key mappings, or a
# mapping of event -> config.
TriggerSpec = Union[str, List[Union[str, ConfigBag]], ConfigBag]

RunsOn = Union[str, List[str], ConfigBag]
Needs = Union[str, List[str]]

WORKFLOW_KEYS: Tuple[str, ...] = ("name", "run-name", "on", "env", "jobs")
JOB_KEYS: Tuple[str, ...] = ("name", "needs", "runs-on", "strategy", "steps")
STRATEGY_KEYS: Tuple[str, ...] = ("matrix", "fail-fast", "max-parallel")
STEP_KEYS: Tuple[str, ...] = ("name", "uses", "run", "with")


@dataclass
class Step:
    """One step of a job: a shell command or an action invocation."""

    name: Optional[str] = None
    uses: Optional[str] = None
    run: Optional[str] = None
    with_: Optional[ConfigBag] = None
    extra: ConfigBag = field(default_factory=dict)

    @property
    def step_id(self) -> Optional[str]:
        value = self.extra.get("id")
        return str(value) if value is not None else None


@dataclass
class Strategy:
    matrix: Optional[ConfigValue] = None
    fail_fast: Optional[bool] = None
    max_parallel: Optional[int] = None
    extra: ConfigBag = field(default_factory=dict)


@dataclass
class Job:
    """A named unit of work. The job id is the key in :attr:`Workflow.jobs`."""

    name: Optional[str] = None
    runs_on: Optional[RunsOn] = None
    needs: Optional[Needs] = None
    steps: List[Step] = field(default_factory=list)
    strategy: Optional[Strategy] = None
    extra: ConfigBag = field(default_factory=dict)

    @property
    def needs_list(self) -> List[str]:
        """Dependencies as a list regardless of how they were written."""
        if self.needs is None:
            return []
        if isinstance(self.needs, str):
            return [self.needs] if self.needs else []
        return list(dict.fromkeys(n for n in self.needs if n))

    @property
    def calls_reusable_workflow(self) -> bool:
        return "uses" in self.extra


@dataclass
class Workflow:
    name: Optional[str] = None
    run_name: Optional[str] = None
    on: TriggerSpec = field(default_factory=dict)
    env: Optional[ConfigBag] = None
    jobs: Dict[str, Job] = field(default_factory=dict)
    extra: ConfigBag = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        """True for a brand-new document with neither jobs nor triggers."""
        return not self.jobs and not self.on


def collapse_needs(needs: List[str]) -> Optional[Needs]:
    """Collapse a dependency list to the on-disk arity: none, one string, or a list."""
    unique = list(dict.fromkeys(needs))
    if not unique:
        return None
    if len(unique) == 1:
        return unique[0]
    return unique


def matrix_combinations(strategy: Optional[Strategy]) -> Optional[int]:
    """Product of the lengths of every list value in ``strategy.matrix``.

    Returns None when there is no matrix or the matrix has no list axes
    (for example when it is a single expression string).
    """
    if strategy is None or not isinstance(strategy.matrix, dict):
        return None
    axes = [v for v in strategy.matrix.values() if isinstance(v, list)]
    if not axes:
        return None
    total = 1
    for axis in axes:
        total *= len(axis)
    return total
