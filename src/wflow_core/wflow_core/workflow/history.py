# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Bounded snapshot-based undo history."""

import copy
from collections import deque
from typing import Deque, Optional

from ..config import get_config
from .model import Workflow


class UndoHistory:
    """A fixed-depth stack of full document snapshots.

    Callers push the current snapshot before each mutating edit. When the
    stack is full the oldest snapshot is discarded.
    """

    def __init__(self, max_depth: Optional[int] = None):
        if max_depth is None:
            max_depth = get_config().max_undo_steps
        if max_depth < 1:
            raise ValueError(f"max_depth={max_depth} must be >= 1")
        self.max_depth = max_depth
        self._stack: Deque[Workflow] = deque(maxlen=max_depth)

    def push(self, snapshot: Workflow):
        self._stack.append(copy.deepcopy(snapshot))

    def undo(self) -> Optional[Workflow]:
        """Pop and return the most recent snapshot, or None when empty."""
        if not self._stack:
            return None
        return self._stack.pop()

    @property
    def can_undo(self) -> bool:
        return bool(self._stack)

    def clear(self):
        self._stack.clear()

    def __len__(self) -> int:
        return len(self._stack)
