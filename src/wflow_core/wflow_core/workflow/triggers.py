# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Conversion between on-disk trigger shapes and a normalized trigger list.

The ``on:`` field accepts a bare event name, a list of event names and/or
single-key mappings, or a mapping of event name to configuration. The editor
works on a flat ordered list of :class:`ParsedTrigger` and collapses it back
to the most compact equivalent shape when writing.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, FrozenSet, List, Sequence

from wflow_common.constants import SCHEDULE_EVENT

from .model import ConfigBag, TriggerSpec

LOGGER = logging.getLogger(__name__)

TRIGGERS_WITH_TYPES: FrozenSet[str] = frozenset(
    {
        "branch_protection_rule",
        "check_run",
        "check_suite",
        "discussion",
        "discussion_comment",
        "issue_comment",
        "issues",
        "label",
        "merge_group",
        "milestone",
        "project",
        "project_card",
        "project_column",
        "pull_request",
        "pull_request_review",
        "pull_request_review_comment",
        "pull_request_target",
        "registry_package",
        "release",
        "repository_dispatch",
        "watch",
        "workflow_run",
    }
)

KNOWN_EVENTS: FrozenSet[str] = TRIGGERS_WITH_TYPES | frozenset(
    {
        "create",
        "delete",
        "deployment",
        "deployment_status",
        "fork",
        "gollum",
        "page_build",
        "public",
        "push",
        "schedule",
        "status",
        "workflow_call",
        "workflow_dispatch",
    }
)

# Config fields summarized by format_trigger, in display order.
SUMMARY_FIELDS = (
    "branches",
    "branches-ignore",
    "tags",
    "tags-ignore",
    "paths",
    "paths-ignore",
    "types",
    "workflows",
    "cron",
)


@dataclass
class ParsedTrigger:
    event: str
    config: ConfigBag = field(default_factory=dict)


def _config(value: Any) -> ConfigBag:
    return copy.deepcopy(value) if isinstance(value, dict) else {}


def _expand(event: Any, value: Any) -> List[ParsedTrigger]:
    event = str(event)
    if event == SCHEDULE_EVENT and isinstance(value, list):
        return [ParsedTrigger(event, _config(entry)) for entry in value]
    return [ParsedTrigger(event, _config(value))]


def parse_triggers(spec: Any) -> List[ParsedTrigger]:
    """Expand a raw ``on:`` value into an ordered list of triggers.

    Configurations are copied, so editing a returned trigger never touches
    ``spec``. Entries that are neither event names nor mappings are skipped;
    see :func:`ignored_trigger_entries`.
    """
    if spec is None:
        return []
    if isinstance(spec, str):
        return [ParsedTrigger(spec)] if spec else []
    triggers: List[ParsedTrigger] = []
    if isinstance(spec, list):
        for item in spec:
            if isinstance(item, str):
                triggers.append(ParsedTrigger(item))
            elif isinstance(item, dict):
                for event, value in item.items():
                    triggers.extend(_expand(event, value))
            else:
                LOGGER.debug("Ignoring trigger list entry of type %s", type(item).__name__)
        return triggers
    if isinstance(spec, dict):
        for event, value in spec.items():
            triggers.extend(_expand(event, value))
        return triggers
    LOGGER.debug("Ignoring trigger spec of type %s", type(spec).__name__)
    return triggers


def ignored_trigger_entries(spec: Any) -> List[Any]:
    """Parts of an ``on:`` value that :func:`parse_triggers` cannot represent."""
    if spec is None or isinstance(spec, (str, dict)):
        return []
    if isinstance(spec, list):
        return [item for item in spec if not isinstance(item, (str, dict))]
    return [spec]


def _entry(trigger: ParsedTrigger) -> Any:
    return {trigger.event: copy.deepcopy(trigger.config)} if trigger.config else trigger.event


def triggers_to_on(triggers: Sequence[ParsedTrigger]) -> TriggerSpec:
    """Collapse a trigger list into the most compact equivalent ``on:`` value.

    All schedule entries are merged into one ``{schedule: [...]}`` group. When
    other events are present the group is appended after them, whatever the
    original position of the schedule entries was.
    """
    others = [t for t in triggers if t.event != SCHEDULE_EVENT]
    schedules = [copy.deepcopy(t.config) for t in triggers if t.event == SCHEDULE_EVENT]

    if not others:
        return {SCHEDULE_EVENT: schedules} if schedules else {}
    if len(others) == 1 and not schedules:
        return _entry(others[0])

    result: List[Any] = [_entry(t) for t in others]
    if schedules:
        result.append({SCHEDULE_EVENT: schedules})
    return result


def _summary_value(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def format_trigger(trigger: ParsedTrigger) -> str:
    """Long display form, e.g. ``push • branches: main, develop``."""
    parts = [trigger.event]
    for key in SUMMARY_FIELDS:
        if key in trigger.config and trigger.config[key] not in (None, [], ""):
            parts.append(f"{key}: {_summary_value(trigger.config[key])}")
    return " • ".join(parts)


def get_trigger_label(trigger: ParsedTrigger) -> str:
    """Short badge label showing only branches, or failing that only tags."""
    for key in ("branches", "tags"):
        value = trigger.config.get(key)
        if value:
            return f"{trigger.event} ({_summary_value(value)})"
    return trigger.event


def trigger_supports_types(event: str) -> bool:
    return event in TRIGGERS_WITH_TYPES
