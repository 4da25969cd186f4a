# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import re
from typing import Final, FrozenSet, Pattern

# Sentinel node ids used by the graph projection.
TRIGGER_NODE_ID: Final[str] = "__trigger__"
ADD_JOB_NODE_ID: Final[str] = "__add_job__"

DEFAULT_RUNNER: Final[str] = "ubuntu-latest"
DEFAULT_FILENAME: Final[str] = "workflow.yml"
DEFAULT_WORKFLOWS_DIR: Final[str] = ".github/workflows"
DEFAULT_STEP_RUN: Final[str] = 'echo "Hello, World!"'
DEFAULT_TRIGGER_EVENT: Final[str] = "push"
DEFAULT_TRIGGER_BRANCH: Final[str] = "main"
UNTITLED_WORKFLOW: Final[str] = "Untitled Workflow"

SCHEDULE_EVENT: Final[str] = "schedule"
MAX_UNDO_STEPS: Final[int] = 50

WORKFLOW_SUFFIXES: Final[FrozenSet[str]] = frozenset({".yml", ".yaml"})

JOB_ID_PATTERN: Final[Pattern[str]] = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")
