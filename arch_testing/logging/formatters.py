"""Logging formatters for forwarded container output."""

import logging


class ContainerLogFormatter(logging.Formatter):
    """Logging formatter that tags messages with the container from the extra parameter."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with a ``<tag>> `` message prefix if present.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format

        Returns
        -------
        str
            Formatted log message with optional container prefix
        """
        container = getattr(record, "container", None)

        if not container:
            return super().format(record)

        original = record.msg
        record.msg = f"{container}> {original}"
        try:
            return super().format(record)
        finally:
            record.msg = original
