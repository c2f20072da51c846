"""Mapping error taxonomy.

Every error is a permanent, non-retryable schema or programming error.
Encode and decode are all-or-nothing: they either return a complete
result or raise one of these.
"""

from __future__ import annotations


class MappingError(Exception):
    """Base class for all record <-> entity mapping failures.

    Attributes:
        code: Stable machine-readable error code.
        field: Dotted path of the offending field, if any.
        expected: Description of the expected kind.
        actual: Description of what was found instead.
    """

    code = "MAPPING_ERROR"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        expected: str | None = None,
        actual: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.expected = expected
        self.actual = actual

    def detail(self) -> dict[str, str]:
        """Non-empty attributes as a plain dict (for service results)."""
        detail: dict[str, str] = {}
        if self.field is not None:
            detail["field"] = self.field
        if self.expected is not None:
            detail["expected"] = self.expected
        if self.actual is not None:
            detail["actual"] = self.actual
        return detail


class UnsupportedTypeError(MappingError):
    code = "UNSUPPORTED_TYPE"


class InvalidKeyTypeError(MappingError):
    code = "INVALID_KEY_TYPE"


class KeyTypeMismatchError(MappingError):
    code = "KEY_TYPE_MISMATCH"


class MissingRequiredFieldError(MappingError):
    code = "MISSING_REQUIRED_FIELD"

    def __init__(self, field: str, *, record: str | None = None) -> None:
        where = f" of {record}" if record else ""
        super().__init__(
            f"Missing required field '{field}'{where}",
            field=field,
            expected="a stored value",
            actual="absent",
        )


class MalformedDecimalError(MappingError):
    code = "MALFORMED_DECIMAL"


class PropertyTypeMismatchError(MappingError):
    code = "PROPERTY_TYPE_MISMATCH"


class ElementTypeMismatchError(PropertyTypeMismatchError):
    code = "ELEMENT_TYPE_MISMATCH"


class NumericOverflowError(MappingError):
    code = "NUMERIC_OVERFLOW"


class UnknownFieldError(MappingError):
    code = "UNKNOWN_FIELD"
