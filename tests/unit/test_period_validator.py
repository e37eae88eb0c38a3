import pytest

from erp_ledger.validators import ErrorCode, validate_close_period
from conftest import USER_ID

def test_valid_close_request():
    result = validate_close_period({"period": "2024-03", "closed_by": USER_ID, "notes": "Cloture mensuelle"})

    assert result.ok
    assert result.value.period == "2024-03"
    assert result.value.year == 2024
    assert result.value.month == 3

def test_month_thirteen_is_invalid_format():
    result = validate_close_period({"period": "2024-13"})

    assert not result.ok
    assert result.codes("period") == {ErrorCode.INVALID_FORMAT}

@pytest.mark.parametrize("period", ["2024-00", "2024-3", "24-03", "2024/03", "march"])
def test_malformed_periods(period):
    assert validate_close_period({"period": period}).codes("period") == {ErrorCode.INVALID_FORMAT}

def test_period_is_required():
    result = validate_close_period({"notes": "x"})
    assert result.codes("period") == {ErrorCode.MISSING_REQUIRED_FIELD}

def test_closed_by_must_be_an_identifier():
    result = validate_close_period({"period": "2024-12", "closed_by": "admin"})
    assert result.codes("closed_by") == {ErrorCode.INVALID_FORMAT}

def test_notes_are_limited_to_500_characters():
    assert validate_close_period({"period": "2024-12", "notes": "n" * 500}).ok
    result = validate_close_period({"period": "2024-12", "notes": "n" * 501})
    assert result.codes("notes") == {ErrorCode.OUT_OF_RANGE}

def test_errors_are_collected():
    result = validate_close_period({"period": "2024-13", "closed_by": "admin", "notes": "n" * 501})
    assert len(result.errors) == 3

def test_non_mapping_request():
    with pytest.raises(TypeError):
        validate_close_period("2024-03")
