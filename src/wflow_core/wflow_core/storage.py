# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Text storage collaborator used by the editor session and the CLI."""

import logging
from pathlib import Path
from typing import Union

LOGGER = logging.getLogger(__name__)

Locator = Union[str, Path]


class StorageError(RuntimeError):
    """A document could not be read or written."""

    def __init__(self, locator: Locator, action: str, reason: str):
        self.locator = str(locator)
        self.action = action
        super().__init__(f"Could not {action} {self.locator}: {reason}")


class FileStorage:
    """Reads and writes UTF-8 documents on the local filesystem.

    Relative locators are resolved against ``root`` when one is given.
    """

    def __init__(self, root: Union[str, Path, None] = None):
        self.root = Path(root) if root is not None else None

    def _path(self, locator: Locator) -> Path:
        path = Path(locator)
        if self.root is not None and not path.is_absolute():
            path = self.root / path
        return path

    def load_text(self, locator: Locator) -> str:
        path = self._path(locator)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeError) as e:
            raise StorageError(path, "read", str(e)) from e
        LOGGER.debug("Read %d characters from %s", len(text), path)
        return text

    def save_text(self, locator: Locator, text: str):
        path = self._path(locator)
        try:
            if path.parent and not path.parent.exists():
                path.parent.mkdir(parents=True)
            path.write_text(text, encoding="utf-8")
        except (OSError, UnicodeError) as e:
            raise StorageError(path, "write", str(e)) from e
        LOGGER.debug("Wrote %d characters to %s", len(text), path)
