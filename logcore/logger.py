"""
LogCore: logging setup shared by the Morio client commands.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

CONSOLE_FORMAT = '%(levelname)s %(name)s: %(message)s'


class JSONFormatter(logging.Formatter):
    """
    Formatter that writes one JSON object per record.

    Output format:
    {
        "timestamp": "2026-02-08T20:30:00.123456Z",
        "level": "INFO",
        "logger": "morio_client.templates",
        "message": "Rendered audit/config-template.yaml",
        "context": {...}  # Optional extra fields
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + 'Z',
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        # logger.info(..., extra={'context': {...}})
        context = getattr(record, 'context', None)
        if context:
            log_data['context'] = context

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }

        if record.levelno <= logging.DEBUG:
            log_data['source'] = {
                'file': record.pathname,
                'line': record.lineno,
                'function': record.funcName
            }

        return json.dumps(log_data, default=str)


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a logger for a module.

    Handlers are attached once, by setup_logging(), to the top-level
    package logger, so module loggers only need a name.

    Example:
        logger = get_logger(__name__)
        logger.info("Rendered template", extra={'context': {'file': path}})
    """
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger


def setup_logging(
    name: str = 'morio_client',
    level: int = logging.WARNING,
    log_file: Optional[str] = None,
    use_json: bool = False
) -> logging.Logger:
    """
    Configure console (and optionally file) logging for a package.

    Args:
        name: Logger to configure (children inherit its handlers)
        level: Logging level for the console and the logger
        log_file: Optional path; file output is always JSON
        use_json: Use JSON on the console as well

    Returns:
        The configured logger

    Calling this again replaces the handlers it installed earlier, so
    commands can reconfigure without duplicating output.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG if log_file else level)

    for handler in list(logger.handlers):
        if getattr(handler, '_logcore', False):
            logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    if use_json:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    console_handler._logcore = True
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        file_handler._logcore = True
        logger.addHandler(file_handler)

    return logger
