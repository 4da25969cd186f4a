# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Map YAML key-paths to 1-based line numbers using PyYAML's AST."""

import re
from typing import Any, Dict, List, Optional, Tuple

import yaml

_LAST_SEGMENT_RE = re.compile(r"(\.[^.\[\]]+|\[\d+\])$")


def _walk(node: Any, prefix: str, visit) -> None:
    if node is None:
        return
    if isinstance(node, yaml.MappingNode):
        for kn, vn in node.value:
            key = str(kn.value)
            p = f"{prefix}.{key}" if prefix else key
            visit(p, kn, node)
            _walk(vn, p, visit)
    elif isinstance(node, yaml.SequenceNode):
        for i, item in enumerate(node.value):
            p = f"{prefix}[{i}]"
            visit(p, item, node)
            _walk(item, p, visit)


def _compose(content: str) -> Any:
    try:
        return yaml.compose(content, Loader=yaml.SafeLoader)
    except yaml.YAMLError:
        return None


def extract_line_map(content: str) -> Dict[str, int]:
    """Parse *content* as YAML and return a dict mapping key-paths to line numbers.

    Key-paths follow the pattern ``"parent.child"`` for mapping keys and
    ``"parent[0]"`` for sequence items.  Line numbers are 1-based.  When a key
    is repeated inside one mapping the first occurrence wins.

    Returns an empty dict if the YAML cannot be parsed.
    """
    result: Dict[str, int] = {}

    def visit(path: str, node: Any, _parent: Any) -> None:
        result.setdefault(path, node.start_mark.line + 1)

    _walk(_compose(content), "", visit)
    return result


def find_duplicate_keys(content: str) -> List[Tuple[str, int]]:
    """Return ``(key_path, line)`` for every repeated key in a mapping.

    PyYAML silently keeps the last value of a duplicated key, so this is the
    only place the repetition is still visible. Only the second and later
    occurrences are reported.
    """
    seen: Dict[Tuple[int, str], int] = {}
    duplicates: List[Tuple[str, int]] = []

    def visit(path: str, node: Any, parent: Any) -> None:
        if not isinstance(parent, yaml.MappingNode):
            return
        key = (id(parent), path)
        if key in seen:
            duplicates.append((path, node.start_mark.line + 1))
        else:
            seen[key] = node.start_mark.line + 1

    _walk(_compose(content), "", visit)
    return duplicates


def line_for_path(line_map: Dict[str, int], path: str) -> Optional[int]:
    """Return the line of *path*, falling back to its closest ancestor."""
    candidate = path
    while candidate:
        if candidate in line_map:
            return line_map[candidate]
        trimmed = _LAST_SEGMENT_RE.sub("", candidate)
        if trimmed == candidate:
            break
        candidate = trimmed
    return None
