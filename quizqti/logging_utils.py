# Description: Logger setup shared by the quizqti modules and the Streamlit pages.
# file name: logging_utils.py

import logging
from typing import Optional, Union

from quizqti.config import get_config_value

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def setup_logger(name: str = "quizqti", level: Optional[Union[int, str]] = None) -> logging.Logger:
    """Attach a single stream handler to ``name``. Calling it again only updates the level."""
    if level is None:
        level = get_config_value("QUIZQTI_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not any(getattr(h, "_quizqti_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._quizqti_handler = True
        logger.addHandler(handler)
    return logger
