# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Validation helpers shared by the workflow linter and the CLI.

Public API
----------
detect_cycle            Detect dependency cycles and return the offending path.
extract_line_map        Map YAML key-paths to 1-based source line numbers.
find_duplicate_keys     Report keys repeated inside one YAML mapping.
line_for_path           Look up a line number for a key-path.
find_workflow_files     Enumerate workflow files under a directory.
closest                 Edit-distance suggestion for a misspelled reference.
"""

from .cycle_detector import detect_cycle
from .line_tracker import extract_line_map, find_duplicate_keys, line_for_path
from .suggestions import closest, find_workflow_files

__all__ = [
    "detect_cycle",
    "extract_line_map",
    "find_duplicate_keys",
    "line_for_path",
    "find_workflow_files",
    "closest",
]
