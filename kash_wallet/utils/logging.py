import logging
import logging.handlers
import os
import sys
import json
import threading
from contextvars import ContextVar, Token
import traceback
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

class LogFormat(Enum):
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"

class AuditEventType(Enum):
    """Custody events that must leave an audit trail"""
    MNEMONIC_GENERATED = "mnemonic_generated"
    WALLETS_PROVISIONED = "wallets_provisioned"
    PROVISIONING_PARTIAL = "provisioning_partial"
    MNEMONIC_REVEALED = "mnemonic_revealed"
    MNEMONIC_REVEAL_DENIED = "mnemonic_reveal_denied"
    KEY_REWRAPPED = "key_rewrapped"
    SECURITY_EVENT = "security_event"

MASK = "***"
PACKAGE_LOGGER = "kash_wallet"

def _fields_of(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, 'structured_data', None) or {}

class StructuredFormatter(logging.Formatter):
    """Renders records with their keyword fields as text or one JSON object per line"""

    def __init__(self, fmt_type: LogFormat = LogFormat.DETAILED, include_context: bool = True):
        super().__init__()
        self.fmt_type = fmt_type
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        fields = _fields_of(record)
        if self.fmt_type == LogFormat.SIMPLE:
            return f"{record.levelname}: {record.getMessage()}"
        if self.fmt_type == LogFormat.JSON:
            return self._as_json(record, fields)
        return self._as_text(record, fields)

    def _as_json(self, record: logging.LogRecord, fields: Dict[str, Any]) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}.{record.funcName}:{record.lineno}",
            "thread": record.threadName,
        }
        if fields:
            entry["data"] = fields
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)

    def _as_text(self, record: logging.LogRecord, fields: Dict[str, Any]) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')
        parts = [f"{stamp}.{int(record.msecs):03d}", f"{record.levelname:8}", record.name,
                 record.getMessage()]
        if self.include_context and fields:
            parts.append(json.dumps(fields, default=str))

        line = " | ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line

class SensitiveDataFilter(logging.Filter):
    """Replaces registered secrets (mnemonics, hex keys) before a record is emitted"""

    MIN_SECRET_LENGTH = 5

    def __init__(self):
        super().__init__()
        self._secrets = set()
        self._guard = threading.Lock()
        self.enabled = True

    def register(self, secret: str) -> None:
        # Very short strings would mask ordinary words
        if secret and len(secret) >= self.MIN_SECRET_LENGTH:
            with self._guard:
                self._secrets.add(secret)

    def forget(self, secret: str) -> None:
        with self._guard:
            self._secrets.discard(secret)

    @property
    def pattern_count(self) -> int:
        return len(self._secrets)

    def mask(self, text: str) -> str:
        with self._guard:
            ordered = sorted(self._secrets, key=len, reverse=True)
        for secret in ordered:
            text = text.replace(secret, MASK)
        return text

    def _scrub(self, value: Any) -> Any:
        if isinstance(value, str):
            return self.mask(value)
        if isinstance(value, dict):
            return {key: self._scrub(item) for key, item in value.items()}
        if isinstance(value, (list, tuple, set)):
            return [self._scrub(item) for item in value]
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.enabled or not self._secrets:
            return True

        # %-style args are merged first so they are scrubbed as well
        message = record.getMessage()
        record.msg, record.args = self.mask(message), ()

        fields = _fields_of(record)
        if fields:
            record.structured_data = self._scrub(fields)
        return True

class LogManager:
    """Owns the handlers on the package logger and the audit sinks"""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._setup_done = False
                cls._instance = instance
            return cls._instance

    def __init__(self):
        if self._setup_done:
            return
        self._setup_done = True

        self.configured = False
        self.loggers: Dict[str, 'AdvancedLogger'] = {}
        self.handlers: List[logging.Handler] = []
        self.audit_handlers: List[Callable[[Dict], None]] = []
        self.sensitive_filter = SensitiveDataFilter()

    def configure(self, level: LogLevel = LogLevel.INFO, fmt: LogFormat = LogFormat.DETAILED,
                  log_file: Optional[str] = None, max_bytes: int = 10 * 1024 * 1024,
                  backup_count: int = 5, console: bool = True) -> None:
        """Replace previously installed handlers with a fresh set"""
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        self.reset()

        package_logger.setLevel(getattr(logging, level.value))
        handlers: List[logging.Handler] = []
        if console:
            handlers.append(logging.StreamHandler(sys.stderr))
        if log_file:
            handlers.append(self._rotating_file(log_file, max_bytes, backup_count))

        formatter = StructuredFormatter(fmt)
        for handler in handlers:
            handler.setFormatter(formatter)
            handler.addFilter(self.sensitive_filter)
            package_logger.addHandler(handler)

        self.handlers = handlers
        self.configured = True

    def reset(self) -> None:
        """Detach and close the handlers installed by configure"""
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        for handler in self.handlers:
            package_logger.removeHandler(handler)
            handler.close()
        self.handlers = []
        self.configured = False

    @staticmethod
    def _rotating_file(path: str, max_bytes: int, backup_count: int) -> logging.Handler:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        return logging.handlers.RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8')

    def get_logger(self, name: str) -> 'AdvancedLogger':
        if name not in self.loggers:
            self.loggers[name] = AdvancedLogger(name)
        return self.loggers[name]

    def add_audit_handler(self, handler: Callable[[Dict], None]) -> None:
        self.audit_handlers.append(handler)

    def remove_audit_handler(self, handler: Callable[[Dict], None]) -> None:
        if handler in self.audit_handlers:
            self.audit_handlers.remove(handler)

class AdvancedLogger:
    """stdlib logger wrapper taking keyword fields, with audit events"""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)
        # One value per thread and per asyncio task
        self._context: ContextVar[Dict[str, Any]] = ContextVar(f"log_context:{name}", default={})
        self.audit_enabled = True
        self.sensitive_filter = LogManager().sensitive_filter

        # Attached to the logger so masking holds under foreign handlers too
        if self.sensitive_filter not in self.logger.filters:
            self.logger.addFilter(self.sensitive_filter)

    def add_sensitive_data(self, data: str) -> None:
        self.sensitive_filter.register(data)

    def remove_sensitive_data(self, data: str) -> None:
        self.sensitive_filter.forget(data)

    @property
    def context_data(self) -> Dict[str, Any]:
        return dict(self._context.get())

    def set_context(self, **context) -> None:
        self._context.set({**self._context.get(), **context})

    def clear_context(self) -> None:
        self._context.set({})

    def push_context(self, **context) -> Token:
        """Layer fields over the current context; undo with pop_context"""
        return self._context.set({**self._context.get(), **context})

    def pop_context(self, token: Token) -> None:
        self._context.reset(token)

    def _emit(self, level: int, msg: str, fields: Dict[str, Any]) -> None:
        if not self.logger.isEnabledFor(level):
            return
        data = dict(self._context.get())
        data.update(fields)
        # stacklevel points at the caller of debug()/info()/...
        self.logger.log(level, msg, extra={'structured_data': data}, stacklevel=3)

    def debug(self, msg: str, **fields) -> None:
        self._emit(logging.DEBUG, msg, fields)

    def info(self, msg: str, **fields) -> None:
        self._emit(logging.INFO, msg, fields)

    def warning(self, msg: str, **fields) -> None:
        self._emit(logging.WARNING, msg, fields)

    def error(self, msg: str, **fields) -> None:
        self._emit(logging.ERROR, msg, fields)

    def critical(self, msg: str, **fields) -> None:
        self._emit(logging.CRITICAL, msg, fields)

    def exception(self, msg: str, **fields) -> None:
        fields['traceback'] = traceback.format_exc()
        self._emit(logging.ERROR, msg, fields)

    def audit(self, event_type: AuditEventType, **details) -> None:
        """Send an audit event to every registered sink, then log it"""
        if not self.audit_enabled:
            return

        event = {
            'event_type': event_type.value,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'owner_id': details.pop('owner_id', 'unknown'),
            'outcome': details.pop('outcome', 'success'),
            'details': details,
        }

        for sink in list(LogManager().audit_handlers):
            try:
                sink(event)
            except Exception as e:
                self.error(f"Audit sink {getattr(sink, '__name__', sink)!r} failed: {e}")

        self.info(f"AUDIT: {event_type.value}", **event)

class WalletLogger(AdvancedLogger):
    """Package logger that also remembers recent security events"""

    def __init__(self, name: str = PACKAGE_LOGGER, max_security_events: int = 1000):
        super().__init__(name)
        self.security_events: Deque[Dict[str, Any]] = deque(maxlen=max_security_events)

    def log_security_event(self, event: str, severity: str = "medium", **details) -> None:
        self.security_events.append({
            'event': event,
            'severity': severity,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'details': dict(details),
        })
        self.audit(AuditEventType.SECURITY_EVENT, security_event=event, severity=severity, **details)

    def get_security_report(self) -> Dict[str, Any]:
        events = list(self.security_events)
        by_severity: Dict[str, int] = {}
        for event in events:
            by_severity[event['severity']] = by_severity.get(event['severity'], 0) + 1

        return {
            'total_events': len(events),
            'events_by_severity': by_severity,
            'recent_events': events[-100:],
            'generated_at': datetime.now(timezone.utc).isoformat(),
        }

def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None,
                  log_format: str = "detailed", max_bytes: int = 10 * 1024 * 1024,
                  backup_count: int = 5) -> None:
    """Configure handlers for the kash_wallet logger tree"""
    LogManager().configure(
        level=LogLevel(log_level.upper()),
        fmt=LogFormat(log_format.lower()),
        log_file=log_file,
        max_bytes=max_bytes,
        backup_count=backup_count,
    )

def get_logger(name: str) -> AdvancedLogger:
    return LogManager().get_logger(name)

logger = WalletLogger(PACKAGE_LOGGER)

class LoggingContext:
    """Adds fields to every record for the duration of a with-block"""

    def __init__(self, logger: AdvancedLogger, **context):
        self.logger = logger
        self.context = context
        self._token: Optional[Token] = None

    def __enter__(self):
        self._token = self.logger.push_context(**self.context)
        return self.logger

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.logger.pop_context(self._token)
        self._token = None
