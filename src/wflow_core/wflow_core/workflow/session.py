# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Editor session: the current snapshot plus undo history and storage.

The session is the only stateful piece of the editor. Every change goes
through it, so both views (graph and raw text) always render the same
snapshot:

- :meth:`EditorSession.apply` runs a pure edit from :mod:`.edits` and records
  the previous snapshot for undo.
- :meth:`EditorSession.apply_source` replaces the document from raw text.
- :meth:`EditorSession.load` / :meth:`EditorSession.save` talk to storage.

Loads are all-or-nothing: a syntax error or a non-mapping root leaves the
current document untouched. A failed save is reported and never changes the
in-memory document.
"""

import logging
import os
from typing import Callable, List, Optional

from ..logconfig import DocumentContext
from ..storage import FileStorage, Locator, StorageError
from .edits import default_filename, new_workflow, sample_workflow
from .history import UndoHistory
from .linter import LintError, lint_workflow
from .model import Workflow
from .parser import parse_workflow
from .projection import FlowGraph, workflow_to_flow
from .serializer import serialize_workflow

LOGGER = logging.getLogger(__name__)

Notifier = Callable[[str], None]


class EditorSession:
    def __init__(
        self,
        storage: Optional[FileStorage] = None,
        history: Optional[UndoHistory] = None,
        notify: Optional[Notifier] = None,
    ):
        self.storage = storage or FileStorage()
        self.history = history or UndoHistory()
        self.notify = notify
        self.workflow: Workflow = new_workflow()
        self.parse_errors: List[str] = []
        self.filename: Optional[str] = None
        self.locator: Optional[Locator] = None
        # Text the current snapshot was parsed from; None once edited
        self._source: Optional[str] = None

    # ── Derived views ──────────────────────────────────────────────────────

    @property
    def graph(self) -> FlowGraph:
        return workflow_to_flow(self.workflow)

    @property
    def lint(self) -> List[LintError]:
        if self.workflow.is_empty:
            return []
        return lint_workflow(self.workflow, self._source)

    @property
    def source(self) -> str:
        return serialize_workflow(self.workflow)

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    # ── Document replacement ───────────────────────────────────────────────

    def _report(self, message: str):
        LOGGER.warning(message)
        if self.notify is not None:
            self.notify(message)

    def _replace(self, workflow: Workflow, record: bool = True):
        if record:
            self.history.push(self.workflow)
        self.workflow = workflow

    def _accept_text(self, text: str, record: bool) -> bool:
        result = parse_workflow(text)
        self.parse_errors = result.errors
        if result.is_blocking:
            LOGGER.info("Rejected document: %s", "; ".join(result.errors))
            return False
        self._replace(result.workflow, record=record)
        self._source = text
        return True

    def apply_source(self, text: str) -> bool:
        """Replace the document from raw text. Returns False on blocking errors."""
        return self._accept_text(text, record=True)

    def apply(self, edit: Callable[..., Workflow], *args, **kwargs) -> Workflow:
        """Run ``edit(current, *args, **kwargs)`` and make its result current.

        Errors raised by the edit propagate and leave the session unchanged.
        """
        updated = edit(self.workflow, *args, **kwargs)
        self._replace(updated)
        self._source = None
        self.parse_errors = []
        return updated

    def undo(self) -> bool:
        previous = self.history.undo()
        if previous is None:
            return False
        self.workflow = previous
        self._source = None
        self.parse_errors = []
        return True

    def load_sample(self):
        self.apply(lambda _current: sample_workflow())

    def clear(self):
        self.apply(lambda _current: new_workflow())
        self.filename = None
        self.locator = None
        DocumentContext.clear()

    # ── Storage ────────────────────────────────────────────────────────────

    def load(self, locator: Locator) -> bool:
        name = os.path.basename(str(locator))
        DocumentContext.set(name)
        try:
            text = self.storage.load_text(locator)
        except StorageError as e:
            self._report(str(e))
            return False
        if not self._accept_text(text, record=False):
            self._report(f"Could not load {name}: {'; '.join(self.parse_errors)}")
            return False
        self.history.clear()
        self.filename = name
        self.locator = locator
        LOGGER.info("Loaded %s with %d job(s)", name, len(self.workflow.jobs))
        return True

    def save(self, locator: Optional[Locator] = None) -> bool:
        """Write the current document. Lint problems never block saving."""
        target = locator or self.locator or default_filename(self.workflow)
        try:
            self.storage.save_text(target, self.source)
        except StorageError as e:
            self._report(str(e))
            return False
        self.locator = target
        self.filename = os.path.basename(str(target))
        DocumentContext.set(self.filename)
        LOGGER.info("Saved %s", self.filename)
        return True
