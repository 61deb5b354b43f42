"""
Hierarchical structured logger with automatic detection.

Features:
- Auto-detects logger hierarchy from call stack (computed once, cached)
- Optional log directory with rotation
- Structured field logging: log.info("Registered", engine="order")

Usage:
    from dendron.logging import getLogger

    class EngineRegistry:
        def __init__(self):
            self.log = getLogger()  # Auto-detects 'core.registry.EngineRegistry'

    log = getLogger()  # Module-level, detected once at import
"""

# Imports
import inspect, logging, logging.handlers, socket
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone as tz

from .context import installServiceContextFilter


# Global state
_hostname = socket.gethostname()
_configured = False
_fileHandlers = {}  # logPath -> handler
_config = {
    'logDir': None,             # None = console only
    'maxBytes': 10_000_000,
    'backupCount': 5,
    'console': True,
    'level': logging.INFO,
    'utc': False
}

# Record attributes that are never rendered as structured fields
_RESERVED = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'message', 'pathname', 'process', 'processName',
    'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'hostname', 'asctime', 'taskName'
}


def configureLogging(logDir: Optional[str] = None, maxBytes: int = 10_000_000,
                     backupCount: int = 5, console: bool = True,
                     level: str = 'INFO', utc: bool = False):
    """
    Configure global logging settings (call once at app startup).

    Args:
        logDir: Directory for log files (default: None, console only)
        maxBytes: Maximum size per log file before rotation (default: 10MB)
        backupCount: Number of backup files to keep per app (default: 5)
        console: Also log to console (default: True)
        level: Minimum log level (default: 'INFO')
        utc: Use UTC timestamps (default: False, uses local time)
    """
    global _configured

    _config.update({'logDir': logDir, 'maxBytes': maxBytes, 'backupCount': backupCount,
                    'console': console, 'level': getattr(logging, level.upper()), 'utc': utc})

    if logDir is not None:
        Path(logDir).mkdir(parents=True, exist_ok=True)

    # Loggers created before reconfiguration pick up the new level
    for logger in logging.Logger.manager.loggerDict.values():
        if isinstance(logger, logging.Logger) and getattr(logger, '_configured_by_dendron', False):
            logger.setLevel(_config['level'])

    _configured = True


def _autoDetectName() -> str:
    """Auto-detect logger name from call stack. Returns hierarchy like: 'core.registry.EngineRegistry'"""

    frame = inspect.currentframe()
    try:
        current = frame
        while current is not None:
            current = current.f_back
            if current is None:
                break

            module = inspect.getmodule(current)
            if module is None:
                continue

            moduleName = module.__name__

            # Skip frames inside this logging package
            if moduleName.startswith('dendron.logging'):
                continue

            # Skip Python's import machinery
            if moduleName.startswith('importlib') or moduleName == '__main__':
                continue

            parts = moduleName.split('.')

            # Drop the package wrapper
            if parts and parts[0] == 'dendron':
                parts = parts[1:]

            className = None
            if current.f_locals:
                if 'self' in current.f_locals:
                    className = current.f_locals['self'].__class__.__name__
                elif 'cls' in current.f_locals:
                    className = current.f_locals['cls'].__name__

            hierarchy = '.'.join(parts) if parts else 'dendron'
            if className:
                hierarchy = f"{hierarchy}.{className}"

            return hierarchy

        return 'unknown'
    finally:
        del frame


class StructuredFormatter(logging.Formatter):
    """Formatter that includes hostname and structured fields.
    Format: timestamp - hostname - logger.name - level - message [field1=value1, field2=value2]"""

    def __init__(self, fmt=None, datefmt=None, utc=False):
        super().__init__(fmt, datefmt)
        self.utc = utc

    def formatTime(self, record, datefmt=None):
        if self.utc:
            ct = datetime.fromtimestamp(record.created, tz=tz.utc)
        else:
            ct = datetime.fromtimestamp(record.created)

        if datefmt:
            return ct.strftime(datefmt)
        return f"{ct.strftime('%Y-%m-%d %H:%M:%S')},{int(record.msecs):03d}"

    def format(self, record):
        record.hostname = _hostname

        structuredFields = [
            f"{key}={value}"
            for key, value in record.__dict__.items()
            if key not in _RESERVED and not key.startswith('_')
        ]

        # Format a copy of the message so other handlers see the original
        originalMsg = record.msg
        if structuredFields:
            record.msg = f"{originalMsg} [{', '.join(structuredFields)}]"

        result = super().format(record)

        record.msg = originalMsg

        return result


def getLogger(name: Optional[str] = None, separateFile: bool = False) -> logging.Logger:
    """
    Get or create a logger with automatic hierarchy detection.

    Args:
        name: Logger name (auto-detected from call stack if None)
        separateFile: If True and a logDir is configured, log to '<name>.log'

    Returns:
        logging.Logger whose level methods accept structured fields as **kwargs
    """
    if not _configured:
        configureLogging()

    if name is None:
        name = _autoDetectName()

    logger = logging.getLogger(f"dendron.{name}")

    # Avoid duplicate messages through the root logger
    logger.propagate = False

    if not getattr(logger, '_configured_by_dendron', False):
        logger.setLevel(_config['level'])

        if _config['logDir'] is not None:
            logFilename = f"{name}.log" if separateFile else "dendron.log"
            logPath = str(Path(_config['logDir']) / logFilename)

            if logPath not in _fileHandlers:
                fileHandler = logging.handlers.RotatingFileHandler(
                    logPath,
                    maxBytes=_config['maxBytes'],
                    backupCount=_config['backupCount'],
                    encoding='utf-8'
                )
                fileHandler.setFormatter(StructuredFormatter(
                    '%(asctime)s - %(hostname)s - %(name)s - %(levelname)s - %(message)s',
                    utc=_config['utc']
                ))
                _fileHandlers[logPath] = fileHandler

            logger.addHandler(_fileHandlers[logPath])

        if _config['console']:
            consoleHandler = logging.StreamHandler()
            consoleHandler.setFormatter(StructuredFormatter(
                '%(name)s - %(levelname)s - %(message)s',
                utc=_config['utc']
            ))
            logger.addHandler(consoleHandler)

        installServiceContextFilter(logger)
        logger._configured_by_dendron = True

    return _wrapLogger(logger)


def _wrapLogger(logger: logging.Logger) -> logging.Logger:
    """
    Wrap a standard logger so level methods accept structured fields as **kwargs.

    This allows: log.info("Message", field1=value1, field2=value2)
    Instead of: log.info("Message", extra={'field1': value1, 'field2': value2})
    """
    if getattr(logger, '_is_wrapped', False):
        return logger

    def wrap(original):
        def method(msg, *args, **kwargs):
            exc_info = kwargs.pop('exc_info', False)
            # Fields colliding with LogRecord attributes are renamed, not rejected
            extra = {(f"field_{key}" if key in _RESERVED else key): value for key, value in kwargs.items()}
            if extra:
                original(msg, *args, extra=extra, exc_info=exc_info)
            else:
                original(msg, *args, exc_info=exc_info)
        return method

    logger.debug = wrap(logger.debug)
    logger.info = wrap(logger.info)
    logger.warning = wrap(logger.warning)
    logger.error = wrap(logger.error)
    logger.critical = wrap(logger.critical)
    logger._is_wrapped = True

    return logger
