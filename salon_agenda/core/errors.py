"""
Booking error taxonomy plus error aggregation for unexpected failures.
"""
import hashlib
import time
from enum import Enum
from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)


class BookingError(Exception):
    """Base class for every error the booking core reports to callers."""

    status_code = 400
    default_code = "BOOKING_ERROR"
    default_message = "Booking failed"

    def __init__(self, message: Optional[str] = None, *, code: Optional[str] = None,
                 details: Optional[str] = None):
        self.code = code or self.default_code
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationFailed(BookingError):
    """Missing or malformed input, caught before any write."""
    status_code = 422
    default_code = "VALIDATION_ERROR"
    default_message = "Invalid booking information"


class SlotUnavailable(BookingError):
    """The requested slot is taken or does not fit the configured hours."""
    status_code = 409
    default_code = "SLOT_TAKEN"
    default_message = "Time slot unavailable"


class NotFound(BookingError):
    status_code = 404
    default_code = "NOT_FOUND"
    default_message = "Not found"


class BusinessNotFound(NotFound):
    default_code = "PROFILE_NOT_FOUND"
    default_message = "Business profile not found"


class ServiceNotFound(NotFound):
    default_code = "SERVICE_NOT_FOUND"
    default_message = "Service not found"


class StylistNotFound(NotFound):
    default_code = "STYLIST_NOT_FOUND"
    default_message = "Stylist not found"


class CustomerNotFound(NotFound):
    default_code = "CUSTOMER_NOT_FOUND"
    default_message = "Customer not found"


class AppointmentNotFound(NotFound):
    default_code = "APPOINTMENT_NOT_FOUND"
    default_message = "Appointment not found"


class ConfirmationRequired(BookingError):
    status_code = 400
    default_code = "CONFIRMATION_REQUIRED"
    default_message = "This action cannot be undone and must be confirmed"


class InvalidTransition(BookingError):
    status_code = 409
    default_code = "INVALID_STATUS_TRANSITION"
    default_message = "Appointment status change not allowed"


class PersistenceFailure(BookingError):
    """Database or network failure. The caller may retry."""
    status_code = 503
    default_code = "PERSISTENCE_ERROR"
    default_message = "Could not save your booking, please try again"
    retryable = True


class MalformedRecord(BookingError):
    """A stored row did not match its response model."""
    status_code = 502
    default_code = "MALFORMED_RECORD"
    default_message = "Unexpected data returned by the store"


class ErrorSeverity(Enum):
    LOW = "low"           # validation errors, expected failures
    MEDIUM = "medium"     # timeouts, recoverable errors
    HIGH = "high"         # database failures, malformed data
    CRITICAL = "critical"


class ErrorPattern:
    """Track error patterns to reduce duplicate logging."""

    def __init__(self, error_type: str, message: str, context: Dict[str, Any]):
        self.error_type = error_type
        self.message = message[:100]
        self.context = {k: v for k, v in context.items() if k in ['endpoint', 'business_id', 'method']}
        self.fingerprint = self._generate_fingerprint()
        self.first_seen = time.time()
        self.last_seen = time.time()
        self.count = 1

    def _generate_fingerprint(self) -> str:
        content = f"{self.error_type}:{self.message}:{self.context.get('endpoint', '')}"
        return hashlib.md5(content.encode(), usedforsecurity=False).hexdigest()[:8]

    def update(self):
        self.last_seen = time.time()
        self.count += 1


class ErrorAggregator:
    """Aggregate and deduplicate errors so repeated failures don't flood the logs."""

    def __init__(self, log_threshold: int = 10, time_window: int = 300):
        self.log_threshold = log_threshold  # Log every Nth occurrence
        self.time_window = time_window
        self.patterns: Dict[str, ErrorPattern] = {}
        self.severity_override = {
            "ValidationFailed": ErrorSeverity.LOW,
            "SlotUnavailable": ErrorSeverity.LOW,
            "TimeoutError": ErrorSeverity.MEDIUM,
            "ConnectionError": ErrorSeverity.MEDIUM,
            "PersistenceFailure": ErrorSeverity.HIGH,
            "MalformedRecord": ErrorSeverity.HIGH,
        }

    def _determine_severity(self, error: Exception) -> ErrorSeverity:
        error_type = type(error).__name__
        if error_type in self.severity_override:
            return self.severity_override[error_type]
        if isinstance(error, BookingError):
            return ErrorSeverity.LOW if error.status_code < 500 else ErrorSeverity.HIGH
        if "timeout" in str(error).lower():
            return ErrorSeverity.MEDIUM
        return ErrorSeverity.MEDIUM

    def should_log(self, pattern: ErrorPattern, severity: ErrorSeverity) -> bool:
        if severity in [ErrorSeverity.HIGH, ErrorSeverity.CRITICAL]:
            return True
        if pattern.count == 1:
            return True
        if severity == ErrorSeverity.MEDIUM and pattern.count % self.log_threshold == 0:
            return True
        if severity == ErrorSeverity.LOW and pattern.count % (self.log_threshold * 5) == 0:
            return True
        return False

    def _prune(self, now: float) -> None:
        """Forget patterns not seen within time_window."""
        stale = [fp for fp, p in self.patterns.items() if now - p.last_seen >= self.time_window]
        for fp in stale:
            del self.patterns[fp]

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None,
                  severity: Optional[ErrorSeverity] = None) -> str:
        """Log error with deduplication and frequency control. Returns the fingerprint."""
        context = context or {}

        if severity is None:
            severity = self._determine_severity(error)

        error_type = type(error).__name__
        message = str(error)

        self._prune(time.time())
        pattern = ErrorPattern(error_type, message, context)
        fingerprint = pattern.fingerprint

        if fingerprint in self.patterns:
            self.patterns[fingerprint].update()
            pattern = self.patterns[fingerprint]
        else:
            self.patterns[fingerprint] = pattern

        if self.should_log(pattern, severity):
            logger.error(
                "aggregated_error",
                error_hash=fingerprint,
                error_type=error_type,
                message=message[:200],
                count=pattern.count,
                severity=severity.value,
                **context
            )

        return fingerprint

    def get_error_summary(self) -> Dict[str, Any]:
        now = time.time()
        recent = [p for p in self.patterns.values() if now - p.last_seen < self.time_window]
        top = sorted(recent, key=lambda p: p.count, reverse=True)[:5]
        return {
            "total_unique_errors": len(recent),
            "total_error_count": sum(p.count for p in recent),
            "top_errors": [
                {"fingerprint": p.fingerprint, "type": p.error_type, "message": p.message, "count": p.count}
                for p in top
            ],
        }


# Global error aggregator instance
error_aggregator = ErrorAggregator()

def log_error(error: Exception, context: Optional[Dict[str, Any]] = None,
              severity: Optional[ErrorSeverity] = None) -> str:
    """Convenience function to log errors through the global aggregator."""
    return error_aggregator.log_error(error, context, severity)
