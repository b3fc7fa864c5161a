"""Logging setup for the ``aceryx`` logger tree."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from aceryx.config.schema import LoggingConfig

ROOT_LOGGER = "aceryx"

# LogRecord attributes carried through to structured output when set via extra=.
_CONTEXT_FIELDS = ("tool_id", "request_id", "protocol")


class _JsonFormatter(logging.Formatter):
    """Emit log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                data[key] = value
        if record.exc_info and record.exc_info[1]:
            data["exception"] = str(record.exc_info[1])
        return json.dumps(data)


def setup_logging(config: LoggingConfig) -> logging.Logger:
    """Configure the ``aceryx`` logger from *config*.

    Replaces handlers installed by an earlier call, so calling it twice
    does not duplicate output.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console: logging.Handler
    if config.structured:
        console = logging.StreamHandler()
        console.setFormatter(_JsonFormatter())
    else:
        console = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_path=False,
        )
        console.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root.addHandler(console)

    if config.file:
        path = Path(config.file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        if config.structured:
            file_handler.setFormatter(_JsonFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
        root.addHandler(file_handler)

    return root
