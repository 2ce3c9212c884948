"""
Logging setup for the bootstrap agent.
"""

import logging
import sys
from typing import Optional, Union


def setup_logging(component_name: str = "cbagent",
                  level: Union[int, str] = logging.INFO,
                  format_string: Optional[str] = None) -> logging.Logger:
    """
    Configure root logging to stdout.

    Args:
        component_name: Tag printed on every line
        level: Logging level, as a number or a name such as "DEBUG"
        format_string: Custom format string (default provided)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if format_string is None:
        format_string = f'[%(asctime)s] [{component_name.upper()}] %(levelname)s - %(message)s'

    logging.basicConfig(
        level=level,
        format=format_string,
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logger = logging.getLogger(component_name)
    logger.info(f"{component_name.upper()} logging initialized (level={logging.getLevelName(level)})")
    return logger
