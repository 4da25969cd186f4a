# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Workflow document model, codec, graph projection, lint and edits."""

from .linter import IssueSeverity, LintError, lint_workflow
from .model import Job, Step, Strategy, Workflow
from .parser import ParseResult, parse_workflow
from .projection import FlowEdge, FlowGraph, FlowNode, workflow_to_flow
from .serializer import serialize_workflow
from .session import EditorSession
from .triggers import ParsedTrigger, parse_triggers, triggers_to_on

__all__ = [
    "EditorSession",
    "FlowEdge",
    "FlowGraph",
    "FlowNode",
    "IssueSeverity",
    "Job",
    "LintError",
    "ParseResult",
    "ParsedTrigger",
    "Step",
    "Strategy",
    "Workflow",
    "lint_workflow",
    "parse_triggers",
    "parse_workflow",
    "serialize_workflow",
    "triggers_to_on",
    "workflow_to_flow",
]
