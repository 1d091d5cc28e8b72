"""
Logging setup.

Standard library logging with the `extra=` context of each record appended
as `key=value` pairs, so call sites can log structured fields.
"""

import logging

from contact_relay.app.core.config import Settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else came from `extra=`.
_RESERVED = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """Formatter that appends structured context passed through `extra=`."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED and not key.startswith("_")
        }
        if context:
            pairs = " ".join(f"{key}={value}" for key, value in context.items())
            line = f"{line} | {pairs}"
        return line


def configure_logging(settings: Settings) -> None:
    """Configure the root logger once for either host."""
    root = logging.getLogger()
    root.setLevel(settings.log_level)

    for handler in root.handlers:
        if isinstance(handler.formatter, ContextFormatter):
            return

    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter(LOG_FORMAT))
    root.addHandler(handler)
