"""Validation of chart-of-accounts entries against the SYSCOHADA coding rules."""
from collections.abc import Mapping
from typing import Annotated, List, Optional
from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from erp_ledger.models.accounting import AccountType
from erp_ledger.models.base import ObjectIdStr
from erp_ledger.validators.errors import ErrorCode, FieldError, ValidationResult, parse_model, require_mapping
from erp_ledger.validators.fields import Text1000

# Class digit 1-8 followed by up to six more digits
ACCOUNT_CODE_PATTERN = r"^[1-8][0-9]{0,6}$"

AccountCode = Annotated[str, StringConstraints(strip_whitespace=True, pattern=ACCOUNT_CODE_PATTERN)]
AccountLabel = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=200)]

class AccountDraft(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    code: AccountCode
    label: AccountLabel
    type: AccountType
    # defaults to the first digit of the code
    account_class: Optional[int] = Field(default=None, ge=1, le=8, validate_default=True)
    parent: Optional[ObjectIdStr] = None
    description: Optional[Text1000] = None
    is_active: bool = True
    is_system: bool = False

    @field_validator("account_class")
    @classmethod
    def matches_code(cls, value: Optional[int], info: ValidationInfo) -> Optional[int]:
        code = info.data.get("code")
        if code is None:
            return value
        expected = int(code[0])
        if value is None:
            return expected
        if value != expected:
            raise PydanticCustomError(
                ErrorCode.INVALID_FORMAT.value,
                "Account class {account_class} does not match code {code} (class {expected})",
                {"account_class": value, "code": code, "expected": expected}
            )
        return value

def validate_account(candidate: Mapping) -> ValidationResult[AccountDraft]:
    require_mapping(candidate, "account candidate")
    errors: List[FieldError] = []
    data = dict(candidate)
    # the chart-of-accounts form posts the class under its short name
    if "class" in data and "account_class" not in data:
        data["account_class"] = data.pop("class")
    normalized = parse_model(AccountDraft, data, errors)
    if errors:
        return ValidationResult.failure(errors)
    return ValidationResult.success(normalized)
