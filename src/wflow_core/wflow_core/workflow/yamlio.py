# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""PyYAML loader and dumper tuned for workflow documents.

PyYAML implements YAML 1.1, where ``on``, ``off``, ``yes`` and ``no`` are
booleans. Workflow files rely on ``on:`` being a plain key, so both the
loader and the dumper only treat ``true``/``false`` as booleans.
"""

import re
from typing import Any

import yaml

_BOOL_TAG = "tag:yaml.org,2002:bool"
_STR_TAG = "tag:yaml.org,2002:str"
_NULL_TAG = "tag:yaml.org,2002:null"
_BOOL_RE = re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$")

# Wide enough that run scripts and expressions are never folded.
_LINE_WIDTH = 4096


def _without_bool(resolvers):
    return {
        first: [(tag, regexp) for tag, regexp in entries if tag != _BOOL_TAG]
        for first, entries in resolvers.items()
    }


class WorkflowLoader(yaml.SafeLoader):
    """Safe loader with YAML 1.2 style booleans."""

    yaml_implicit_resolvers = _without_bool(yaml.SafeLoader.yaml_implicit_resolvers)


WorkflowLoader.add_implicit_resolver(_BOOL_TAG, _BOOL_RE, list("tTfF"))


class WorkflowDumper(yaml.SafeDumper):
    """Safe dumper producing GitHub-style block YAML."""

    yaml_implicit_resolvers = _without_bool(yaml.SafeDumper.yaml_implicit_resolvers)

    def increase_indent(self, flow: bool = False, indentless: bool = False):
        # Indent block sequences under their parent key
        return super().increase_indent(flow, False)

    def ignore_aliases(self, data: Any) -> bool:
        return True


WorkflowDumper.add_implicit_resolver(_BOOL_TAG, _BOOL_RE, list("tTfF"))


def _represent_str(dumper: WorkflowDumper, data: str) -> yaml.ScalarNode:
    if "\n" in data:
        return dumper.represent_scalar(_STR_TAG, data, style="|")
    return dumper.represent_scalar(_STR_TAG, data)


def _represent_none(dumper: WorkflowDumper, _data: None) -> yaml.ScalarNode:
    return dumper.represent_scalar(_NULL_TAG, "")


WorkflowDumper.add_representer(str, _represent_str)
WorkflowDumper.add_representer(type(None), _represent_none)


def load_yaml(text: str) -> Any:
    """Load a single YAML document. Raises ``yaml.YAMLError`` on bad syntax."""
    return yaml.load(text, Loader=WorkflowLoader)


def dump_yaml(data: Any) -> str:
    return yaml.dump(
        data,
        Dumper=WorkflowDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=_LINE_WIDTH,
    )
