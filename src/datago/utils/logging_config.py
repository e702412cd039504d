"""
Logging Configuration for DataGo Game Service
Console logging with optional rotating files
"""

import logging
import logging.config
import sys
from pathlib import Path
from typing import Any, Dict

from .config import Settings

LOG_FORMAT = '[%(asctime)s] %(levelname)s [%(name)s:%(lineno)d] %(message)s'
MAX_LOG_BYTES = 10 * 1024 * 1024


def _rotating_file(path: Path, level: str, backups: int) -> Dict[str, Any]:
    return {
        'class': 'logging.handlers.RotatingFileHandler',
        'level': level,
        'formatter': 'game',
        'filename': str(path),
        'maxBytes': MAX_LOG_BYTES,
        'backupCount': backups,
        'encoding': 'utf-8'
    }


def build_logging_config(settings: Settings) -> Dict[str, Any]:
    """dictConfig for the game server; file handlers only when LOG_DIR is set"""
    handlers: Dict[str, Dict[str, Any]] = {
        'console': {
            'class': 'logging.StreamHandler',
            'level': settings.LOG_LEVEL,
            'formatter': 'game',
            'stream': sys.stdout
        }
    }

    if settings.LOG_DIR:
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers['file'] = _rotating_file(log_dir / 'datago_game_service.log', 'INFO', backups=5)
        handlers['error_file'] = _rotating_file(log_dir / 'errors.log', 'ERROR', backups=3)

    def console_only(level: str) -> Dict[str, Any]:
        return {'level': level, 'handlers': ['console'], 'propagate': False}

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'game': {'format': LOG_FORMAT, 'datefmt': '%Y-%m-%d %H:%M:%S'}
        },
        'handlers': handlers,
        'loggers': {
            '': {
                'level': settings.LOG_LEVEL,
                'handlers': list(handlers),
                'propagate': False
            },
            'uvicorn': console_only('INFO'),
            'uvicorn.access': console_only('WARNING')
        }
    }


def setup_logging(settings: Settings) -> None:
    """Install the logging config and quiet chatty libraries"""
    logging.config.dictConfig(build_logging_config(settings))

    for noisy in ('asyncio', 'aiohttp', 'websockets'):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"🚀 DataGo logging initialized - Level: {settings.LOG_LEVEL}, Environment: {settings.ENVIRONMENT}"
    )
