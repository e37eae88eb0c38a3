"""
Accounting entry validation.

Rules run in three stages and every error is collected:

1. structural checks (types, required fields, enumerations, lengths),
2. per-line rules: a line carries a debit or a credit, never both, never neither,
3. the balance rule: total debit equals total credit within ``BALANCE_TOLERANCE``.

A line that fails stage 1 or 2 skips stage 3 for the whole submission, so
amounts that did not parse are never summed.
"""
from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_core import PydanticCustomError

from erp_ledger.models.accounting import BALANCE_TOLERANCE, Journal, RelatedDocument, period_of
from erp_ledger.models.base import ObjectIdStr
from erp_ledger.validators.errors import ErrorCode, FieldError, ValidationResult, parse_model, require_mapping
from erp_ledger.validators.fields import Amount, CalendarDate, Label, PastDate, ShortText, Text500, Uri

MIN_LINES = 2
MAX_ATTACHMENTS = 5

class NormalizedLine(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    account: ObjectIdStr
    label: Label
    debit: Amount = Decimal("0")
    credit: Amount = Decimal("0")
    reference: Optional[ShortText] = None

    @model_validator(mode="after")
    def check_amount_side(self) -> "NormalizedLine":
        if self.debit > 0 and self.credit > 0:
            raise PydanticCustomError(
                ErrorCode.DEBIT_AND_CREDIT.value,
                "A line cannot carry both a debit and a credit",
                {"debit": self.debit, "credit": self.credit}
            )
        if self.debit == 0 and self.credit == 0:
            raise PydanticCustomError(
                ErrorCode.NO_AMOUNT.value,
                "A line must carry either a debit or a credit"
            )
        return self

class _EntryHeader(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: Optional[PastDate] = None
    journal: Journal
    reference: Optional[ShortText] = None
    description: Optional[Text500] = None
    related_document: Optional[RelatedDocument] = None
    attachments: List[Uri] = Field(default_factory=list, max_length=MAX_ATTACHMENTS)

class _EntryUpdateHeader(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: Optional[PastDate] = None
    reference: Optional[ShortText] = None
    description: Optional[Text500] = None
    attachments: Optional[List[Uri]] = Field(default=None, max_length=MAX_ATTACHMENTS)

class NormalizedEntry(BaseModel):
    """An entry that passed every rule, ready to be persisted as a draft."""
    model_config = ConfigDict(frozen=True)

    date: CalendarDate
    journal: Journal
    reference: Optional[str] = None
    description: Optional[str] = None
    lines: Tuple[NormalizedLine, ...]
    related_document: Optional[RelatedDocument] = None
    attachments: Tuple[str, ...] = ()
    total_debit: Decimal
    total_credit: Decimal
    period: str

class NormalizedEntryUpdate(BaseModel):
    """Fields of an accepted partial update; only supplied fields are set."""
    model_config = ConfigDict(frozen=True)

    date: Optional[CalendarDate] = None
    reference: Optional[str] = None
    description: Optional[str] = None
    lines: Optional[Tuple[NormalizedLine, ...]] = None
    attachments: Optional[Tuple[str, ...]] = None
    total_debit: Optional[Decimal] = None
    total_credit: Optional[Decimal] = None
    period: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)

def entry_totals(lines) -> Tuple[Decimal, Decimal]:
    total_debit = sum((line.debit for line in lines), Decimal("0"))
    total_credit = sum((line.credit for line in lines), Decimal("0"))
    return total_debit, total_credit

def check_balance(lines, field: str = "lines") -> Optional[FieldError]:
    """Balance rule over already-valid lines; None when balanced."""
    total_debit, total_credit = entry_totals(lines)
    difference = total_debit - total_credit
    if abs(difference) > BALANCE_TOLERANCE:
        return FieldError(
            field=field,
            code=ErrorCode.UNBALANCED,
            message=f"Entry is not balanced. Debit: {total_debit}, Credit: {total_credit}",
            context={
                "total_debit": total_debit,
                "total_credit": total_credit,
                "difference": difference,
            }
        )
    return None

def validate_line(line: Mapping, path: str = "") -> ValidationResult[NormalizedLine]:
    """Validate one entry line; error paths are relative to ``path``."""
    require_mapping(line, "entry line")
    errors: List[FieldError] = []
    normalized = parse_model(NormalizedLine, line, errors, prefix=path)
    if errors:
        return ValidationResult.failure(errors)
    return ValidationResult.success(normalized)

def _validate_lines(raw_lines: Any, errors: List[FieldError]) -> Optional[List[NormalizedLine]]:
    if raw_lines is None:
        errors.append(FieldError(
            field="lines",
            code=ErrorCode.MISSING_REQUIRED_FIELD,
            message="Entry lines are required"
        ))
        return None
    if isinstance(raw_lines, (str, bytes, Mapping)) or not hasattr(raw_lines, "__iter__"):
        errors.append(FieldError(
            field="lines",
            code=ErrorCode.INVALID_FORMAT,
            message="Entry lines must be a list"
        ))
        return None

    raw_lines = list(raw_lines)
    too_few = len(raw_lines) < MIN_LINES
    if too_few:
        errors.append(FieldError(
            field="lines",
            code=ErrorCode.TOO_FEW_LINES,
            message=f"At least {MIN_LINES} lines are required (debit and credit)",
            context={"min_lines": MIN_LINES, "count": len(raw_lines)}
        ))

    normalized: List[NormalizedLine] = []
    clean = True
    for index, raw in enumerate(raw_lines):
        path = f"lines[{index}]"
        if not isinstance(raw, Mapping):
            clean = False
            errors.append(FieldError(
                field=path,
                code=ErrorCode.INVALID_FORMAT,
                message="Entry line must be an object"
            ))
            continue
        result = validate_line(raw, path=path)
        if result.ok:
            normalized.append(result.value)
        else:
            clean = False
            errors.extend(result.errors)

    if not clean or too_few:
        return None

    imbalance = check_balance(normalized)
    if imbalance:
        errors.append(imbalance)
        return None
    return normalized

def validate_entry(candidate: Mapping, today: Optional[date] = None) -> ValidationResult[NormalizedEntry]:
    """
    Validate a proposed accounting entry.

    ``today`` is the validation clock: it bounds the entry date and is used
    as the date when none is supplied. Pure function; the same input and
    clock always give the same result.
    """
    require_mapping(candidate, "entry candidate")
    today = today or date.today()
    errors: List[FieldError] = []

    header_data = {key: value for key, value in candidate.items() if key != "lines"}
    header = parse_model(_EntryHeader, header_data, errors, context={"today": today})
    lines = _validate_lines(candidate.get("lines"), errors)

    if errors:
        return ValidationResult.failure(errors)

    entry_date = header.date or today
    total_debit, total_credit = entry_totals(lines)
    return ValidationResult.success(NormalizedEntry(
        date=entry_date,
        journal=header.journal,
        reference=header.reference,
        description=header.description,
        lines=tuple(lines),
        related_document=header.related_document,
        attachments=tuple(header.attachments),
        total_debit=total_debit,
        total_credit=total_credit,
        period=period_of(entry_date)
    ))

def validate_entry_update(candidate: Mapping, today: Optional[date] = None) -> ValidationResult[NormalizedEntryUpdate]:
    """Partial variant of ``validate_entry``; supplied lines obey the same rules."""
    require_mapping(candidate, "entry candidate")
    today = today or date.today()
    errors: List[FieldError] = []

    header_data = {key: value for key, value in candidate.items() if key != "lines"}
    header = parse_model(_EntryUpdateHeader, header_data, errors, context={"today": today})
    lines = None
    if "lines" in candidate:
        lines = _validate_lines(candidate["lines"], errors)

    if errors:
        return ValidationResult.failure(errors)

    changes: Dict[str, Any] = {
        key: getattr(header, key) for key in header.model_fields_set
    }
    # an explicit null cannot clear the date or the attachment list
    for key in ("date", "attachments"):
        if key in changes and changes[key] is None:
            del changes[key]
    if "attachments" in changes:
        changes["attachments"] = tuple(changes["attachments"])
    if "date" in changes:
        changes["period"] = period_of(changes["date"])
    if lines is not None:
        changes["lines"] = tuple(lines)
        changes["total_debit"], changes["total_credit"] = entry_totals(lines)
    return ValidationResult.success(NormalizedEntryUpdate(**changes))
