# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Edit-distance suggestions for misspelled references, and workflow file discovery."""

import difflib
import os
from typing import Iterable, List, Optional

from ..constants import WORKFLOW_SUFFIXES


def find_workflow_files(workflows_dir: str) -> List[str]:
    """Return every ``.yml``/``.yaml`` file under *workflows_dir*, sorted."""
    results: List[str] = []
    if not os.path.isdir(workflows_dir):
        return results
    for root, _dirs, files in os.walk(workflows_dir):
        for fname in files:
            if os.path.splitext(fname)[1].lower() in WORKFLOW_SUFFIXES:
                results.append(os.path.join(root, fname))
    return sorted(results)


def closest(ref: str, candidates: Iterable[str], cutoff: float = 0.6) -> Optional[str]:
    """Return the single closest candidate to *ref*, or None."""
    matches = difflib.get_close_matches(ref, list(dict.fromkeys(candidates)), n=1, cutoff=cutoff)
    return matches[0] if matches else None
