# File: src/utils/logger.py
"""Logging configuration"""
import logging
import json
import sys
from datetime import datetime, timezone
from typing import Dict, Any

ROOT_LOGGER_NAME = 'feed_triage'

EXTRA_FIELDS = ('article_id', 'page', 'status_filter')

class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        # Add extra fields if present
        for name in EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)

def setup_logging(config: Dict[str, Any] = None) -> logging.Logger:
    """Setup logging configuration"""
    if config is None:
        config = {
            'level': 'INFO',
            'file_enabled': False,
            'file_path': 'feed_triage.log',
            'console_enabled': True,
            'format': 'standard'
        }

    level = getattr(logging, str(config.get('level', 'INFO')).upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    # Clear existing handlers
    logger.handlers.clear()

    if config.get('format') == 'json':
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    if config.get('console_enabled', True):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if config.get('file_enabled', False):
        file_handler = logging.FileHandler(config.get('file_path', 'feed_triage.log'))
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger

def get_logger(name: str) -> logging.Logger:
    """Get logger instance"""
    return logging.getLogger(f'{ROOT_LOGGER_NAME}.{name}')
