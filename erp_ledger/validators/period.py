"""Validation of period-closing requests."""
from collections.abc import Mapping
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

from erp_ledger.models.base import ObjectIdStr
from erp_ledger.validators.errors import FieldError, ValidationResult, parse_model, require_mapping
from erp_ledger.validators.fields import PeriodKey, Text500

class ClosePeriodRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    period: PeriodKey
    closed_by: Optional[ObjectIdStr] = None
    notes: Optional[Text500] = None

    @property
    def year(self) -> int:
        return int(self.period[:4])

    @property
    def month(self) -> int:
        return int(self.period[5:7])

def validate_close_period(request: Mapping) -> ValidationResult[ClosePeriodRequest]:
    """
    Shape check for closing a YYYY-MM period.

    Whether every entry of the period is posted is the caller's concern.
    """
    require_mapping(request, "close request")
    errors: List[FieldError] = []
    normalized = parse_model(ClosePeriodRequest, request, errors)
    if errors:
        return ValidationResult.failure(errors)
    return ValidationResult.success(normalized)
