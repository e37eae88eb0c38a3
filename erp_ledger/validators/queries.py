"""Parameter-shape validators for read-side accounting queries."""
from collections.abc import Mapping
from datetime import date
from typing import Annotated, List, Literal, Optional, Type
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from erp_ledger.models.accounting import EntryStatus, Journal
from erp_ledger.models.base import ObjectIdStr
from erp_ledger.validators.errors import ErrorCode, FieldError, ValidationResult, M, parse_model, require_mapping
from erp_ledger.validators.fields import Amount, CalendarDate, PeriodKey, SearchText

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10

def _end_after_start(end: Optional[date], info: ValidationInfo) -> Optional[date]:
    start = info.data.get("start_date")
    if end is not None and start is not None and end < start:
        raise PydanticCustomError(
            ErrorCode.OUT_OF_RANGE.value,
            "End date must be on or after the start date ({start_date})",
            {"start_date": start.isoformat()}
        )
    return end

EndDate = Annotated[CalendarDate, AfterValidator(_end_after_start)]

class LedgerQuery(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    account: Optional[ObjectIdStr] = None
    start_date: Optional[CalendarDate] = None
    end_date: Optional[EndDate] = None
    journal: Optional[Journal] = None
    include_opening: bool = True
    include_closing: bool = True

class SearchEntryQuery(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    search: Optional[SearchText] = None
    journal: Optional[Journal] = None
    period: Optional[PeriodKey] = None
    account: Optional[ObjectIdStr] = None
    start_date: Optional[CalendarDate] = None
    end_date: Optional[EndDate] = None
    status: Optional[EntryStatus] = None
    min_amount: Optional[Amount] = None
    max_amount: Optional[Amount] = None
    sort_by: Literal["date", "number", "amount", "created_at"] = "date"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(1, ge=1)
    limit: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

class BalanceSheetQuery(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    date: Optional[CalendarDate] = None
    comparative: bool = False
    comparative_date: Optional[CalendarDate] = Field(default=None, validate_default=True)
    format: Literal["syscohada", "simplified", "detailed"] = "syscohada"

    @field_validator("comparative_date")
    @classmethod
    def required_when_comparative(cls, value, info: ValidationInfo):
        if value is None and info.data.get("comparative"):
            raise PydanticCustomError(
                ErrorCode.MISSING_REQUIRED_FIELD.value,
                "A comparison date is required in comparative mode"
            )
        return value

class IncomeStatementQuery(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    start_date: CalendarDate
    end_date: EndDate
    comparative: bool = False
    format: Literal["syscohada", "nature", "function"] = "syscohada"

def _validate(model_cls: Type[M], request: Mapping) -> ValidationResult[M]:
    require_mapping(request, "query")
    errors: List[FieldError] = []
    # empty query-string values mean "not supplied"
    data = {key: value for key, value in request.items() if value != ""}
    normalized = parse_model(model_cls, data, errors)
    if errors:
        return ValidationResult.failure(errors)
    return ValidationResult.success(normalized)

def validate_ledger_query(request: Mapping) -> ValidationResult[LedgerQuery]:
    return _validate(LedgerQuery, request)

def validate_search_entry(request: Mapping) -> ValidationResult[SearchEntryQuery]:
    """Filters, sorting and pagination for the entry list; ``limit`` is capped at 100."""
    return _validate(SearchEntryQuery, request)

def validate_balance_sheet_query(request: Mapping, today: Optional[date] = None) -> ValidationResult[BalanceSheetQuery]:
    result = _validate(BalanceSheetQuery, request)
    if result.ok and result.value.date is None:
        result = ValidationResult.success(result.value.model_copy(update={"date": today or date.today()}))
    return result

def validate_income_statement_query(request: Mapping) -> ValidationResult[IncomeStatementQuery]:
    return _validate(IncomeStatementQuery, request)
