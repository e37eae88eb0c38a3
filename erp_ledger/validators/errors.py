"""
Error taxonomy and result type shared by the accounting validators.

Validators never raise for malformed input: they return a ``ValidationResult``
holding either the normalized value or every ``FieldError`` found, so a caller
can render the complete list in one response.
"""
from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Sequence, Set, Type, TypeVar
from pydantic import BaseModel, Field, ValidationError

class ErrorCode(str, Enum):
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_ENUM_VALUE = "INVALID_ENUM_VALUE"
    INVALID_FORMAT = "INVALID_FORMAT"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    DEBIT_AND_CREDIT = "DEBIT_AND_CREDIT"
    NO_AMOUNT = "NO_AMOUNT"
    UNBALANCED = "UNBALANCED"
    TOO_FEW_LINES = "TOO_FEW_LINES"

class FieldError(BaseModel):
    """A single problem, keyed by the path of the offending field (e.g. ``lines[2].debit``)."""
    field: str
    code: ErrorCode
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)

T = TypeVar("T")

class ValidationResult(Generic[T]):
    """Normalized value on success, non-empty error list on failure."""

    __slots__ = ("value", "errors")

    def __init__(self, value: Optional[T] = None, errors: Optional[List[FieldError]] = None):
        self.value = value
        self.errors = list(errors or [])

    @classmethod
    def success(cls, value: T) -> "ValidationResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, errors: Sequence[FieldError]) -> "ValidationResult[T]":
        if not errors:
            raise ValueError("a failed validation needs at least one error")
        return cls(errors=list(errors))

    @property
    def ok(self) -> bool:
        return not self.errors

    def codes(self, field: Optional[str] = None) -> Set[ErrorCode]:
        """Error codes raised, optionally restricted to one field path."""
        return {e.code for e in self.errors if field is None or e.field == field}

    def errors_for(self, field: str) -> List[FieldError]:
        return [e for e in self.errors if e.field == field]

    def unwrap(self) -> T:
        if not self.ok:
            raise EntryValidationError(self.errors)
        return self.value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationResult):
            return NotImplemented
        return self.value == other.value and self.errors == other.errors

    def __repr__(self) -> str:
        if self.ok:
            return f"ValidationResult(value={self.value!r})"
        return f"ValidationResult(errors={self.errors!r})"

class EntryValidationError(Exception):
    """Raised by service code that refuses to persist an invalid payload."""

    def __init__(self, errors: Sequence[FieldError]):
        self.errors = list(errors)
        summary = "; ".join(f"{e.field or '<root>'}: {e.message}" for e in self.errors)
        super().__init__(f"Validation failed: {summary}")

# pydantic-core error types grouped into the ledger taxonomy; anything
# unlisted is a malformed value
_ENUM_TYPES = {"enum", "literal_error"}
_RANGE_TYPES = {
    "string_too_long", "too_long", "too_short",
    "greater_than", "greater_than_equal", "less_than", "less_than_equal",
    "date_future", "date_past",
}

def _code_for(error: Dict[str, Any]) -> ErrorCode:
    error_type = error["type"]
    if error_type in ErrorCode.__members__:
        # raised by our own rules through PydanticCustomError
        return ErrorCode(error_type)
    if error_type == "missing":
        return ErrorCode.MISSING_REQUIRED_FIELD
    if error_type == "string_too_short":
        # min_length=1 is how required text is expressed
        if (error.get("ctx") or {}).get("min_length") == 1:
            return ErrorCode.MISSING_REQUIRED_FIELD
        return ErrorCode.OUT_OF_RANGE
    if error_type in _ENUM_TYPES:
        return ErrorCode.INVALID_ENUM_VALUE
    if error_type in _RANGE_TYPES:
        return ErrorCode.OUT_OF_RANGE
    return ErrorCode.INVALID_FORMAT

def _plain_context(ctx: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not ctx:
        return {}
    return {
        key: value for key, value in ctx.items()
        if isinstance(value, (str, int, float, bool, Decimal, date))
    }

def join_path(prefix: str, field: str) -> str:
    if not prefix:
        return field
    if not field:
        return prefix
    if field.startswith("["):
        return f"{prefix}{field}"
    return f"{prefix}.{field}"

def format_loc(loc: Sequence[Any], prefix: str = "") -> str:
    """``("lines", 2, "debit")`` -> ``lines[2].debit``."""
    path = prefix
    for part in loc:
        if isinstance(part, int):
            path = f"{path}[{part}]"
        else:
            path = join_path(path, str(part))
    return path

def from_pydantic(exc: ValidationError, prefix: str = "") -> List[FieldError]:
    return [
        FieldError(
            field=format_loc(error["loc"], prefix),
            code=_code_for(error),
            message=error["msg"],
            context=_plain_context(error.get("ctx"))
        )
        for error in exc.errors(include_url=False)
    ]

M = TypeVar("M", bound=BaseModel)

def require_mapping(candidate: Any, what: str = "candidate") -> None:
    """A missing or non-object payload is a programming error, not a validation failure."""
    if not isinstance(candidate, Mapping):
        raise TypeError(f"{what} must be a mapping, got {type(candidate).__name__}")

def parse_model(model_cls: Type[M], data: Mapping, errors: List[FieldError],
                prefix: str = "", context: Optional[Dict[str, Any]] = None) -> Optional[M]:
    """Validate ``data`` into ``model_cls``, appending any failures to ``errors``."""
    try:
        return model_cls.model_validate(dict(data), context=context)
    except ValidationError as exc:
        errors.extend(from_pydantic(exc, prefix))
        return None
