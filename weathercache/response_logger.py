"""
Persist the last raw upstream response per location for diagnostics.
"""
import logging
from pathlib import Path
from typing import Union

from .queries import LocationQuery, log_file_name

logger = logging.getLogger("response_logger")


class ResponseFileLogger:
    """
    Writes each successful raw response to <log_path>/<query file name>,
    overwriting the previous one for the same location.

    Write failures are logged as warnings and never raised.
    """

    def __init__(self, log_path: Union[str, Path]):
        self.log_path = Path(log_path)

    def __call__(self, query: LocationQuery, content: str) -> None:
        path = self.log_path / log_file_name(query)
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not write response log {path}: {e}")
            return
        logger.debug(f"Logged response for {query!r} to {path}")
