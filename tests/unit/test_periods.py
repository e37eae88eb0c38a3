import pytest
from unittest.mock import AsyncMock
from pymongo.errors import DuplicateKeyError

from erp_ledger.models.audit import ActionType
from erp_ledger.services.exceptions import NotFoundError, PeriodClosedError
from erp_ledger.services.periods import period_service
from erp_ledger.validators import EntryValidationError, ErrorCode
from conftest import COMPANY_ID, USER_ID

@pytest.mark.asyncio
async def test_close_period(mock_db, fiscal_year_2024):
    mock_db.fiscal_years.find_for_month = AsyncMock(return_value=fiscal_year_2024)
    mock_db.fiscal_years.mark_period_closed = AsyncMock(return_value=True)
    mock_db.fiscal_years.get = AsyncMock(return_value=fiscal_year_2024)
    mock_db.entries.count_unposted_in_period = AsyncMock(return_value=0)

    result = await period_service.close_period(COMPANY_ID, {"period": "2024-03", "notes": "Fin de mois"}, USER_ID)

    assert result is fiscal_year_2024
    mock_db.fiscal_years.find_for_month.assert_called_once_with(COMPANY_ID, 2024, 3)
    mock_db.fiscal_years.mark_period_closed.assert_called_once_with(
        fiscal_year_2024.id, 3, USER_ID, "Fin de mois"
    )
    audit_kwargs = mock_db.audit.log_action.call_args.kwargs
    assert audit_kwargs["action_type"] == ActionType.PERIOD_CLOSED
    assert audit_kwargs["entity"] == "2024-03"

@pytest.mark.asyncio
async def test_closed_by_in_request_wins(mock_db, fiscal_year_2024):
    closer = "65f0c0ffee00000000000a02"
    mock_db.fiscal_years.find_for_month = AsyncMock(return_value=fiscal_year_2024)
    mock_db.fiscal_years.mark_period_closed = AsyncMock(return_value=True)
    mock_db.entries.count_unposted_in_period = AsyncMock(return_value=2)

    await period_service.close_period(COMPANY_ID, {"period": "2024-03", "closed_by": closer}, USER_ID)

    assert mock_db.fiscal_years.mark_period_closed.call_args.args[2] == closer

@pytest.mark.asyncio
async def test_invalid_request(mock_db):
    with pytest.raises(EntryValidationError) as exc_info:
        await period_service.close_period(COMPANY_ID, {"period": "2024-13"}, USER_ID)

    assert exc_info.value.errors[0].field == "period"
    assert exc_info.value.errors[0].code == ErrorCode.INVALID_FORMAT
    mock_db.fiscal_years.find_for_month.assert_not_called()

@pytest.mark.asyncio
async def test_missing_fiscal_year(mock_db):
    with pytest.raises(NotFoundError):
        await period_service.close_period(COMPANY_ID, {"period": "2031-01"}, USER_ID)

@pytest.mark.asyncio
async def test_already_closed(mock_db, fiscal_year_2024):
    fiscal_year_2024.get_period(3).is_closed = True
    mock_db.fiscal_years.find_for_month = AsyncMock(return_value=fiscal_year_2024)

    with pytest.raises(PeriodClosedError):
        await period_service.close_period(COMPANY_ID, {"period": "2024-03"}, USER_ID)
    mock_db.fiscal_years.mark_period_closed.assert_not_called()

@pytest.mark.asyncio
async def test_concurrent_close_is_refused(mock_db, fiscal_year_2024):
    mock_db.fiscal_years.find_for_month = AsyncMock(return_value=fiscal_year_2024)
    mock_db.fiscal_years.mark_period_closed = AsyncMock(return_value=False)
    mock_db.entries.count_unposted_in_period = AsyncMock(return_value=0)

    with pytest.raises(PeriodClosedError):
        await period_service.close_period(COMPANY_ID, {"period": "2024-03"}, USER_ID)
    mock_db.audit.log_action.assert_not_called()

@pytest.mark.asyncio
async def test_open_periods(mock_db, fiscal_year_2024):
    mock_db.fiscal_years.find_for_month = AsyncMock(return_value=fiscal_year_2024)

    assert await period_service.is_closed(COMPANY_ID, "2024-03") is False
    await period_service.ensure_open(COMPANY_ID, "2024-03")

@pytest.mark.asyncio
async def test_open_fiscal_year_creates_twelve_periods(mock_db):
    fiscal_year = await period_service.open_fiscal_year(COMPANY_ID, 2025)

    mock_db.fiscal_years.create.assert_called_once()
    assert len(fiscal_year.periods) == 12
    assert fiscal_year.get_period(2).end_date.day == 28

@pytest.mark.asyncio
async def test_open_fiscal_year_created_concurrently(mock_db, fiscal_year_2024):
    # first read misses, the insert loses the race, the re-read finds the winner
    mock_db.fiscal_years.find_for_month = AsyncMock(side_effect=[None, fiscal_year_2024])
    mock_db.fiscal_years.create = AsyncMock(side_effect=DuplicateKeyError("E11000 duplicate key"))

    fiscal_year = await period_service.open_fiscal_year(COMPANY_ID, 2024)

    assert fiscal_year is fiscal_year_2024
    assert mock_db.fiscal_years.find_for_month.call_count == 2
