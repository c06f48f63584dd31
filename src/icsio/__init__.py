__version__ = "0.3.0"

from icsio.errors import (  # noqa: E402
    DateTimeParseError,
    DuplicateFieldError,
    FetchError,
    IcsError,
    InvalidValueError,
    MissingPropertyError,
    SerializationPreconditionError,
    StructuralError,
)
from icsio.loader import fetch_and_parse, load_file  # noqa: E402
from icsio.models import Calendar, Event, Recurrence, add_event, create  # noqa: E402
from icsio.parser import ParseResult, parse, parse_with_diagnostics  # noqa: E402
from icsio.serializer import serialize, serialize_to_file, to_ics  # noqa: E402

__all__ = [
    "Calendar",
    "DateTimeParseError",
    "DuplicateFieldError",
    "Event",
    "FetchError",
    "IcsError",
    "InvalidValueError",
    "MissingPropertyError",
    "ParseResult",
    "Recurrence",
    "SerializationPreconditionError",
    "StructuralError",
    "__version__",
    "add_event",
    "create",
    "fetch_and_parse",
    "load_file",
    "parse",
    "parse_with_diagnostics",
    "serialize",
    "serialize_to_file",
    "to_ics",
]
