"""
Logging setup: JSON or text records on stdout, optional daily-rotated file,
per-request context and credential masking
"""
import json
import logging
import re
import sys
from contextvars import ContextVar
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from jtbd.core.config import get_settings
from jtbd.core.metrics import log_records_total

# request_id, user_id, path... set by the middleware for the current request
request_context: ContextVar[Dict[str, Any]] = ContextVar('request_context', default={})

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime'}

# extra= keys whose values never reach a handler
_SECRET_KEYS = frozenset(['password', 'password_hash', 'token', 'session_token', 'refresh_token', 'authorization'])

_DATEFMT = '%Y-%m-%d %H:%M:%S'


class CredentialMaskingFilter(logging.Filter):
    """Replaces passwords, session tokens and bearer headers with ***"""

    PATTERNS = [
        re.compile(r'(password["\']?\s*[:=]\s*["\']?)[^"\'\s&,}]+', re.IGNORECASE),
        re.compile(r'((?:session_|refresh_)?token["\']?\s*[:=]\s*["\']?)[^"\'\s&,}]+', re.IGNORECASE),
        re.compile(r'(Bearer\s+)[^\s"]+', re.IGNORECASE),
    ]

    @classmethod
    def mask(cls, text: str) -> str:
        for pattern in cls.PATTERNS:
            text = pattern.sub(r'\1***', text)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.mask(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(self.mask(a) if isinstance(a, str) else a for a in record.args)
        for key in _SECRET_KEYS & record.__dict__.keys():
            setattr(record, key, '***')
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record, request context and extra= fields merged in"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'location': f"{record.module}:{record.funcName}:{record.lineno}",
        }
        payload.update(request_context.get({}))

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS:
                payload[key] = value

        if record.exc_info:
            payload['exception'] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class _LevelCounter(logging.Handler):
    def emit(self, record: logging.LogRecord):
        log_records_total.labels(level=record.levelname).inc()


class LoggingConfig:
    """Process-wide logging configuration"""

    _configured = False

    @classmethod
    def _levels(cls, overrides: Optional[Dict[str, str]]) -> Dict[str, str]:
        settings = get_settings()
        levels = {
            "sqlalchemy.engine": "INFO" if settings.log_sqlalchemy else "WARNING",
            "sqlalchemy.pool": "WARNING",
            "uvicorn.access": "INFO" if settings.log_uvicorn_access else "WARNING",
            "uvicorn.error": "INFO",
            "httpx": "WARNING",
            "jtbd": settings.log_level,
        }
        if settings.log_module_levels:
            try:
                levels.update(json.loads(settings.log_module_levels))
            except (json.JSONDecodeError, TypeError):
                print(f"Ignoring malformed LOG_MODULE_LEVELS: {settings.log_module_levels!r}", file=sys.stderr)
        if overrides:
            levels.update(overrides)
        return levels

    @classmethod
    def configure(cls, module_levels: Optional[Dict[str, str]] = None):
        """
        Install handlers on the root logger. Safe to call more than once;
        only the first call has an effect.

        Args:
            module_levels: Extra logger -> level overrides, applied last
        """
        if cls._configured:
            return

        settings = get_settings()
        if settings.log_format.lower() == "json":
            formatter = JsonFormatter(datefmt=_DATEFMT)
        else:
            formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s', datefmt=_DATEFMT)

        handlers = [logging.StreamHandler(sys.stdout)]

        if settings.log_file_enabled:
            log_path = Path(settings.log_file_path)
            if not log_path.is_absolute():
                log_path = Path(__file__).resolve().parents[3] / log_path
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(TimedRotatingFileHandler(
                filename=str(log_path),
                when='midnight',
                backupCount=settings.log_file_retention,
                encoding='utf-8',
            ))

        for handler in handlers:
            handler.setFormatter(formatter)
            if not settings.log_sensitive_data:
                handler.addFilter(CredentialMaskingFilter())
        handlers.append(_LevelCounter())

        logging.basicConfig(level=settings.log_level.upper(), handlers=handlers, force=True)
        for name, level in cls._levels(module_levels).items():
            logging.getLogger(name).setLevel(level.upper())

        cls._configured = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger for a module"""
        if not cls._configured:
            cls.configure()
        return logging.getLogger(name)

    @classmethod
    def set_context(cls, **kwargs):
        """Add fields to every record logged during the current request"""
        ctx = request_context.get({}).copy()
        ctx.update(kwargs)
        request_context.set(ctx)

    @classmethod
    def clear_context(cls):
        request_context.set({})
