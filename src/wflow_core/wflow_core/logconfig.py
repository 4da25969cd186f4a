# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Logging setup shared by the editor session and the CLI.

The name of the document being edited lives in a context variable and is
stamped onto every log record by :class:`DocumentContextFilter`, so log lines
from the parser, linter and storage layers can be tied back to a file.
"""

import logging
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from typing import List, Optional

document_var: ContextVar[str] = ContextVar("document", default="")

_installed: List[logging.Handler] = []

LOG_FORMAT = "%(asctime)s %(levelname)s [%(document)s] %(name)s: %(message)s"
JSON_FORMAT = (
    '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"document": "%(document)s", "message": "%(message)s"}'
)


class DocumentContext:
    """Set and clear the document name attached to log records."""

    @staticmethod
    def set(document: str):
        document_var.set(document)

    @staticmethod
    def clear():
        document_var.set("")

    @staticmethod
    def get() -> str:
        return document_var.get()


class DocumentContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.document = document_var.get()
        return True


def configure_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_bytes: Optional[int] = None,
    backup_count: Optional[int] = None,
    json_format: bool = False,
) -> List[logging.Handler]:
    """Install handlers on the root logger and return them.

    Handlers from a previous call are removed first, so calling this twice
    does not duplicate output.

    Console output goes to stderr. When ``log_file`` is given, records are also
    written there, rotating after ``max_bytes`` (0 or None disables rotation).
    """
    formatter = logging.Formatter(JSON_FORMAT if json_format else LOG_FORMAT)
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(
            RotatingFileHandler(
                log_file,
                maxBytes=max_bytes or 0,
                backupCount=backup_count or 0,
                encoding="utf-8",
            )
        )

    root = logging.getLogger()
    for old in _installed:
        root.removeHandler(old)
        old.close()
    _installed.clear()

    root.setLevel(level.upper())
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(DocumentContextFilter())
        root.addHandler(handler)
    _installed.extend(handlers)
    return handlers
