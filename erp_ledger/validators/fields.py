"""Reusable constrained field types for the accounting validators."""
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any
from pydantic import (
    AfterValidator, AnyUrl, BeforeValidator, Field, StringConstraints, TypeAdapter, ValidationError, ValidationInfo
)
from pydantic_core import PydanticCustomError
from erp_ledger.validators.errors import ErrorCode

PERIOD_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

def _coerce_amount(value: Any) -> Any:
    if value is None:
        return Decimal("0")
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        # go through repr so 100.01 stays 100.01 instead of its binary expansion
        return Decimal(str(value))
    if isinstance(value, str):
        return value.strip()
    return value

def _coerce_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value.strip()) > 10:
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
        except ValueError:
            return value
    return value

def _not_in_future(value: date, info: ValidationInfo) -> date:
    today = (info.context or {}).get("today") or date.today()
    if value > today:
        raise PydanticCustomError(
            ErrorCode.OUT_OF_RANGE.value,
            "Date cannot be in the future (latest allowed: {max_date})",
            {"max_date": today.isoformat()}
        )
    return value

Amount = Annotated[Decimal, BeforeValidator(_coerce_amount), Field(ge=0, allow_inf_nan=False)]

CalendarDate = Annotated[date, BeforeValidator(_coerce_date)]
PastDate = Annotated[date, BeforeValidator(_coerce_date), AfterValidator(_not_in_future)]

# Required, non-blank after trimming
Label = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]

ShortText = Annotated[str, StringConstraints(strip_whitespace=True, max_length=100)]
Text500 = Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]
Text1000 = Annotated[str, StringConstraints(strip_whitespace=True, max_length=1000)]
SearchText = Annotated[str, StringConstraints(strip_whitespace=True)]

PeriodKey = Annotated[str, StringConstraints(strip_whitespace=True, pattern=PERIOD_PATTERN)]

_url_adapter = TypeAdapter(AnyUrl)

def _check_url(value: str) -> str:
    # checked as a URL but kept as typed; AnyUrl would append a trailing slash
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        raise PydanticCustomError(ErrorCode.INVALID_FORMAT.value, "Must be a valid URL", {"value": value})
    return value

Uri = Annotated[str, StringConstraints(strip_whitespace=True), AfterValidator(_check_url)]
