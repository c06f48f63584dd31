from __future__ import annotations


class IcsError(ValueError):
    """Base class for errors returned to callers of parse/serialize."""

    def __init__(self, message: str, *, line_no: int | None = None):
        self.line_no = line_no
        if line_no is not None:
            message = f"line {line_no}: {message}"
        super().__init__(message)


class StructuralError(IcsError):
    """Raised when BEGIN/END markers are missing, misplaced or unterminated."""


class MissingPropertyError(StructuralError):
    """Raised when a calendar ends without a required header property."""

    def __init__(self, property_name: str, *, line_no: int | None = None):
        self.property_name = property_name
        super().__init__(f"calendar has no {property_name}", line_no=line_no)


class DuplicateFieldError(IcsError):
    """Raised when a property that may appear once is assigned twice."""

    def __init__(self, property_name: str, *, line_no: int | None = None):
        self.property_name = property_name
        super().__init__(f"{property_name} may not be specified more than once", line_no=line_no)


class InvalidValueError(IcsError):
    """Raised when a mandatory or strictly-typed property value cannot be decoded."""

    def __init__(self, property_name: str, value: str, reason: str, *, line_no: int | None = None):
        self.property_name = property_name
        self.value = value
        super().__init__(f"invalid {property_name} value '{value}': {reason}", line_no=line_no)


class SerializationPreconditionError(IcsError):
    """Raised when an event lacks a field the serializer must emit, or holds one it cannot."""

    def __init__(self, *, event_index: int, uid: str | None, field_name: str, reason: str | None = None):
        self.event_index = event_index
        self.uid = uid
        self.field_name = field_name
        self.reason = reason
        problem = f"has invalid {field_name} ({reason})" if reason else f"has no {field_name}"
        super().__init__(f"event #{event_index} (uid={uid or '-'}) {problem}; cannot serialize")


class DateTimeParseError(ValueError):
    """Raised when a value does not match the fixed iCalendar date-time pattern."""


class FetchError(RuntimeError):
    """Raised when calendar text cannot be retrieved from a URL."""
