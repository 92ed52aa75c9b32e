from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from bookinstance import STATUS_CHOICES, DEFAULT_STATUS

# validator.js compatible HTML escaping table
_HTML_ESCAPES = {
    "&": "&amp;",
    '"': "&quot;",
    "'": "&#x27;",
    "<": "&lt;",
    ">": "&gt;",
    "/": "&#x2F;",
    "\\": "&#x5C;",
    "`": "&#96;",
}

Step = Callable[[Any], Any]


class TextValidator:
    """Sanitizers and checks used as steps in a ``FieldRule``.

    Sanitizers return the transformed value. Checks return the value unchanged
    or raise ``ValueError``.
    """

    @staticmethod
    def trim(value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @staticmethod
    def escape(value: Any) -> str:
        if value is None:
            return ""
        return "".join(_HTML_ESCAPES.get(ch, ch) for ch in str(value))

    @staticmethod
    def min_length(minimum: int) -> Step:
        def check(value: Any) -> Any:
            if len(value or "") < minimum:
                raise ValueError(f"Must contain at least {minimum} characters")
            return value
        return check

    @staticmethod
    def one_of(choices: Sequence[str]) -> Step:
        def check(value: Any) -> Any:
            if value not in choices:
                raise ValueError(f"Must be one of {', '.join(choices)}")
            return value
        return check

    @staticmethod
    def iso_date(value: Any) -> date:
        """Parse an ISO-8601 date (a full timestamp is accepted and truncated)."""
        if isinstance(value, date):
            return value
        text = str(value).strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            return datetime.fromisoformat(text).date()


@dataclass
class FieldError:
    field: str
    message: str
    value: Any = None


@dataclass
class FormResult:
    values: Dict[str, Any] = field(default_factory=dict)
    errors: List[FieldError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, field_name: str, message: str) -> None:
        self.errors.append(FieldError(field_name, message, self.values.get(field_name)))

    def error_for(self, field_name: str) -> Optional[str]:
        for error in self.errors:
            if error.field == field_name:
                return error.message
        return None


class FieldRule:
    """An ordered list of steps applied to one form field.

    Every step runs even after a check fails, so sanitizers still clean the
    value that gets echoed back into a re-rendered form. Only the first
    failure is reported, using the rule's message.
    """

    def __init__(self, name: str, message: str, *steps: Step, optional: bool = False,
                 default: Any = None) -> None:
        self.name = name
        self.message = message
        self.steps = steps
        self.optional = optional
        self.default = default

    def run(self, raw: Any) -> tuple[Any, Optional[str]]:
        # Optional fields skip every step when absent, empty or falsy
        if self.optional and not raw:
            return self.default, None

        value = raw
        error: Optional[str] = None
        for step in self.steps:
            try:
                value = step(value)
            except (ValueError, TypeError):
                if error is None:
                    error = self.message
        return value, error


class FormValidator:
    """Runs every rule against submitted form data and aggregates the errors."""

    def __init__(self, *rules: FieldRule) -> None:
        self.rules = rules

    def validate(self, data: Mapping[str, Any]) -> FormResult:
        result = FormResult()
        for rule in self.rules:
            value, error = rule.run(data.get(rule.name))
            result.values[rule.name] = value
            if error:
                result.add_error(rule.name, error)
        return result


GENRE_NAME_MESSAGE = "Genre name must contain at least 3 characters"
BOOK_MESSAGE = "Book must be specified"
IMPRINT_MESSAGE = "Imprint must be specified"
STATUS_MESSAGE = f"Status must be one of {', '.join(STATUS_CHOICES)}"
DUE_BACK_MESSAGE = "Invalid date"

genre_form = FormValidator(
    FieldRule("name", GENRE_NAME_MESSAGE, TextValidator.trim, TextValidator.min_length(3), TextValidator.escape),
)

bookinstance_form = FormValidator(
    FieldRule("book", BOOK_MESSAGE, TextValidator.trim, TextValidator.min_length(1), TextValidator.escape),
    FieldRule("imprint", IMPRINT_MESSAGE, TextValidator.trim, TextValidator.min_length(1), TextValidator.escape),
    FieldRule("status", STATUS_MESSAGE, TextValidator.escape, TextValidator.one_of(STATUS_CHOICES),
              optional=True, default=DEFAULT_STATUS),
    FieldRule("due_back", DUE_BACK_MESSAGE, TextValidator.iso_date, optional=True),
)
