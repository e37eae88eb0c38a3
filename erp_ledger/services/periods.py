import logging
from typing import Any, Mapping, Optional
from pymongo.errors import DuplicateKeyError

from erp_ledger.database import db
from erp_ledger.models.accounting import FiscalYear
from erp_ledger.models.audit import ActionType
from erp_ledger.services.exceptions import NotFoundError, PeriodClosedError
from erp_ledger.validators import EntryValidationError, validate_close_period

logger = logging.getLogger(__name__)

def split_period(period: str) -> tuple:
    return int(period[:4]), int(period[5:7])

class PeriodService:
    """Fiscal years and the closing of their monthly periods."""

    async def open_fiscal_year(self, company_id: str, year: int) -> FiscalYear:
        existing = await db.fiscal_years.find_for_month(company_id, year, 1)
        if existing:
            return existing
        fiscal_year = FiscalYear.for_calendar_year(company_id, year)
        try:
            await db.fiscal_years.create(fiscal_year)
        except DuplicateKeyError:
            # opened by a concurrent request in between
            logger.info(f"Fiscal year {year} already opened for company {company_id}")
            return await db.fiscal_years.find_for_month(company_id, year, 1)
        logger.info(f"Fiscal year {year} opened for company {company_id}")
        return fiscal_year

    async def is_closed(self, company_id: str, period: str) -> bool:
        year, month = split_period(period)
        fiscal_year = await db.fiscal_years.find_for_month(company_id, year, month)
        return bool(fiscal_year and fiscal_year.is_month_closed(month))

    async def ensure_open(self, company_id: str, period: str):
        if await self.is_closed(company_id, period):
            raise PeriodClosedError(f"Period {period} is closed; no entry can be written into it")

    async def close_period(self, company_id: str, request: Mapping[str, Any],
                           user_id: Optional[str] = None) -> FiscalYear:
        """
        Close a YYYY-MM period of the fiscal year containing it.

        Entries still in draft do not block the close; they can no longer be
        posted afterwards.
        """
        result = validate_close_period(request)
        if not result.ok:
            raise EntryValidationError(result.errors)
        close = result.value

        fiscal_year = await db.fiscal_years.find_for_month(company_id, close.year, close.month)
        if not fiscal_year:
            raise NotFoundError(f"No fiscal year covers period {close.period}")
        if fiscal_year.is_month_closed(close.month):
            raise PeriodClosedError(f"Period {close.period} is already closed")

        drafts = await db.entries.count_unposted_in_period(company_id, close.period)
        if drafts:
            logger.warning(f"Closing {close.period} for {company_id} with {drafts} draft entries left")

        closed_by = close.closed_by or user_id
        # the update only matches while the period is still open
        if not await db.fiscal_years.mark_period_closed(fiscal_year.id, close.month, closed_by, close.notes):
            raise PeriodClosedError(f"Period {close.period} is already closed")

        await db.audit.log_action(
            company_id=company_id,
            actor_id=closed_by,
            action_type=ActionType.PERIOD_CLOSED,
            entity=close.period,
            details=f"Period {close.period} closed",
            metadata={"notes": close.notes, "draft_entries": drafts}
        )
        logger.info(f"Period {close.period} closed for fiscal year {fiscal_year.year}")
        return await db.fiscal_years.get(fiscal_year.id)

period_service = PeriodService()
