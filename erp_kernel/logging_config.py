"""
Structured JSON logging for the ERP posting kernel.

Every record under the ``erp_kernel`` logger is written as one JSON object.
Posting-scoped fields (correlation id, company, actor, operation and the
document number once allocated) live in context variables, so each thread
or task that runs a posting carries its own values and every log line of
that posting is tagged with them.

    with LogContext.bind(company_code="ACME", operation="create_sales_invoice"):
        LogContext.set(document_number="INV-000042")
        logger.info("sales_invoice_posted", extra={"total_amount": total})
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextvars import ContextVar, Token
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

# ---------------------------------------------------------------------------
# Posting context
# ---------------------------------------------------------------------------

CONTEXT_FIELDS = (
    "correlation_id",
    "company_code",
    "actor_id",
    "operation",
    "document_number",
)

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"erp_log_{name}", default=None) for name in CONTEXT_FIELDS
}


class LogContext:
    """Posting-scoped log fields backed by context variables."""

    @staticmethod
    def set(
        *,
        correlation_id: str | None = None,
        company_code: str | None = None,
        actor_id: str | None = None,
        operation: str | None = None,
        document_number: str | None = None,
    ) -> None:
        """Set the given fields; None leaves a field unchanged."""
        values = {
            "correlation_id": correlation_id,
            "company_code": company_code,
            "actor_id": actor_id,
            "operation": operation,
            "document_number": document_number,
        }
        for name, value in values.items():
            if value is not None:
                _context_vars[name].set(str(value))

    @staticmethod
    def get_all() -> dict[str, str]:
        """Fields currently set, in declaration order."""
        return {
            name: value
            for name in CONTEXT_FIELDS
            if (value := _context_vars[name].get()) is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _context_vars.values():
            var.set(None)

    @staticmethod
    def bind(**fields: Any) -> "_BoundContext":
        """
        Context manager for one posting.

        Sets the known ``fields`` on entry.  On exit every field is restored
        to its value before entry, including fields changed with ``set()``
        inside the block.  Unknown names are ignored.
        """
        return _BoundContext(fields)


class _BoundContext:

    def __init__(self, fields: dict[str, Any]):
        self._fields = {k: v for k, v in fields.items() if k in _context_vars}
        self._saved: list[Token[str | None]] = []

    def __enter__(self) -> type[LogContext]:
        for name, var in _context_vars.items():
            value = self._fields.get(name)
            self._saved.append(var.set(var.get() if value is None else str(value)))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        for var, token in zip(_context_vars.values(), self._saved):
            var.reset(token)
        self._saved.clear()


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_RESERVED_RECORD_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    """exc_type/exc_message plus ``code`` and public attributes of kernel errors."""
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for attr, value in vars(exc).items():
        if not attr.startswith("_") and attr != "code":
            fields[f"exc_{attr}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, posting context, extras, error."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED_RECORD_KEYS and key not in payload
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

ROOT_LOGGER_NAME = "erp_kernel"

_setup_lock = threading.Lock()
_handler: logging.Handler | None = None


def get_logger(name: str) -> logging.Logger:
    """Child logger of ``erp_kernel``, e.g. ``get_logger("services.sales")``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``erp_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``.  Records do
    not propagate to the root logger.
    """
    global _handler
    with _setup_lock:
        if _handler is not None:
            return
        _handler = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        _handler.setFormatter(StructuredFormatter())
        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.setLevel(level)
        root.propagate = False
        root.addHandler(_handler)


def reset_logging() -> None:
    """Detach the handler installed by ``configure_logging``. For tests."""
    global _handler
    with _setup_lock:
        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.handlers.clear()
        root.setLevel(logging.WARNING)
        _handler = None
