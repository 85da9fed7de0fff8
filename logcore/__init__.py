"""
logcore: Logging helpers for the Morio client

Human-readable console output for interactive use, with optional JSON
log files for later collection.
"""

from logcore.logger import JSONFormatter, get_logger, setup_logging

__all__ = ['JSONFormatter', 'get_logger', 'setup_logging']
__version__ = '1.1.0'
