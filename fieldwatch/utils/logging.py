"""
Logging setup for FieldWatch.

Configures the root logger from the ``logging`` configuration section.
"""

import os
import logging
from logging.handlers import RotatingFileHandler
from typing import Dict, Any, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(config: Optional[Dict[str, Any]] = None) -> None:
    """Configure logging from a ``logging`` config section.

    Args:
        config: Dictionary with ``level``, ``file``, ``max_size`` and
            ``backup_count`` keys (all optional)
    """
    config = config or {}
    level = getattr(logging, str(config.get('level', 'INFO')).upper(), logging.INFO)

    handlers = [logging.StreamHandler()]

    log_file = config.get('file')
    if log_file:
        directory = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(directory, exist_ok=True)
        handlers.append(RotatingFileHandler(
            log_file,
            maxBytes=config.get('max_size', 10485760),
            backupCount=config.get('backup_count', 5)
        ))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
