"""
Logging configuration for deadswitch.

Provides structured JSON logging and an audit logger for will lifecycle,
gate decisions and settlement outcomes. Secrets are never passed to the
audit logger; identities are masked.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Optional

# Context variable for request ID tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    One JSON object per line, suitable for log aggregation.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class AuditLogger:
    """
    Specialized logger for audit events.

    Every state change of a will and every gate decision goes through here.
    """

    def __init__(self, name: str = "deadswitch.audit"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        extra = {
            "event_type": event_type,
            "request_id": request_id_var.get(),
            **kwargs
        }

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def will_registered(
        self,
        owner: str,
        beneficiary: str,
        will_id: str,
        heartbeat_interval: int,
        has_secret: bool
    ) -> None:
        self._log(
            logging.INFO,
            "WILL_REGISTERED",
            owner=owner,
            beneficiary=beneficiary,
            will_id=will_id,
            heartbeat_interval=heartbeat_interval,
            has_secret=has_secret,
            message=f"Will {will_id} registered"
        )

    def heartbeat(self, owner: str, last_active: int) -> None:
        self._log(
            logging.INFO,
            "HEARTBEAT",
            owner=owner,
            last_active=last_active,
            message="Owner liveness signal"
        )

    def secret_updated(self, owner: str, size: int) -> None:
        self._log(
            logging.INFO,
            "SECRET_UPDATED",
            owner=owner,
            size=size,
            message="Escrowed secret replaced"
        )

    def gate_decision(
        self,
        gate_id: str,
        caller: str,
        owner: str,
        result: str,
        reason: Optional[str] = None
    ) -> None:
        """Log an authorization gate decision. Denials are logged at WARNING."""
        level = logging.INFO if result == "GRANT" else logging.WARNING
        self._log(
            level,
            "GATE_DECISION",
            gate_id=gate_id,
            caller=caller,
            owner=owner,
            result=result,
            reason=reason,
            message=f"{gate_id}: {result}" + (f" ({reason})" if reason else "")
        )

    def claim_granted(self, owner: str, beneficiary: str, will_id: str, first_claim: bool) -> None:
        self._log(
            logging.INFO,
            "CLAIM_GRANTED",
            owner=owner,
            beneficiary=beneficiary,
            will_id=will_id,
            first_claim=first_claim,
            message=f"Claim granted for will {will_id}"
        )

    def settlement_result(
        self,
        will_id: str,
        leg: str,
        status: str,
        reference: Optional[str] = None,
        error: Optional[str] = None
    ) -> None:
        level = logging.INFO if status == "SUCCESS" else logging.ERROR
        self._log(
            level,
            "SETTLEMENT_RESULT",
            will_id=will_id,
            leg=leg,
            status=status,
            reference=reference,
            error=error,
            message=f"Settlement {leg} {status} for will {will_id}"
        )

    def key_derivation(self, caller: str, owner: str, operation: str) -> None:
        self._log(
            logging.INFO,
            "KEY_DERIVATION",
            caller=caller,
            owner=owner,
            operation=operation,
            message=f"Key material released: {operation}"
        )

    def security_event(
        self,
        event: str,
        severity: str = "medium",
        **details
    ) -> None:
        """Log a security-relevant event."""
        level = {
            "low": logging.INFO,
            "medium": logging.WARNING,
            "high": logging.ERROR,
            "critical": logging.CRITICAL
        }.get(severity, logging.WARNING)

        self._log(
            level,
            "SECURITY_EVENT",
            security_event=event,
            severity=severity,
            **details,
            message=f"Security event: {event}"
        )

    def rate_limit_exceeded(self, client_id: str, endpoint: str) -> None:
        self._log(
            logging.WARNING,
            "RATE_LIMIT_EXCEEDED",
            client_id=client_id,
            endpoint=endpoint,
            message=f"Rate limit exceeded for {client_id} on {endpoint}"
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting (recommended for production)
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set the request ID for the current context.

    Args:
        request_id: Request ID to set, or None to generate one

    Returns:
        The request ID that was set
    """
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


# Global audit logger instance
audit_log = AuditLogger()
