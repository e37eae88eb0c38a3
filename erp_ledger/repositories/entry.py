import re
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Tuple
from pymongo import ASCENDING, DESCENDING
from erp_ledger.repositories.base import BaseRepository
from erp_ledger.models.accounting import AccountingEntry, EntryStatus, Journal
from erp_ledger.validators.queries import SearchEntryQuery

# Entries that count in ledgers and balances
BOOKED_STATUSES = [EntryStatus.POSTED.value, EntryStatus.VALIDATED.value]

# numbers sort on (period, sequence); the text form stops ordering past 99999
_SORT_FIELDS = {
    "date": ["date"],
    "number": ["period", "sequence"],
    "amount": ["total_debit"],
    "created_at": ["created_at"],
}

def start_of(day: date) -> datetime:
    return datetime.combine(day, time.min)

def end_of(day: date) -> datetime:
    return datetime.combine(day, time.max)

def date_range_filter(start: Optional[date], end: Optional[date]) -> Optional[Dict[str, Any]]:
    if start is None and end is None:
        return None
    bounds: Dict[str, Any] = {}
    if start is not None:
        bounds["$gte"] = start_of(start)
    if end is not None:
        bounds["$lte"] = end_of(end)
    return bounds

class EntryRepository(BaseRepository[AccountingEntry]):

    async def last_sequence_in_period(self, company_id: str, period: str) -> int:
        """Highest sequence already issued for the period, 0 when none."""
        doc = await self.collection.find_one(
            {"company_id": company_id, "period": period},
            projection={"sequence": 1},
            sort=[("sequence", DESCENDING)]
        )
        return (doc or {}).get("sequence") or 0

    def build_search_filter(self, company_id: str, query: SearchEntryQuery) -> Dict[str, Any]:
        filter: Dict[str, Any] = {"company_id": company_id}
        if query.search:
            pattern = {"$regex": re.escape(query.search), "$options": "i"}
            filter["$or"] = [
                {"number": pattern},
                {"reference": pattern},
                {"description": pattern},
            ]
        if query.journal:
            filter["journal"] = query.journal.value
        if query.period:
            filter["period"] = query.period
        if query.status:
            filter["status"] = query.status.value
        if query.account:
            filter["lines.account"] = query.account
        dates = date_range_filter(query.start_date, query.end_date)
        if dates:
            filter["date"] = dates
        amounts: Dict[str, Any] = {}
        if query.min_amount is not None:
            amounts["$gte"] = float(query.min_amount)
        if query.max_amount is not None:
            amounts["$lte"] = float(query.max_amount)
        if amounts:
            filter["total_debit"] = amounts
        return filter

    async def search(self, company_id: str, query: SearchEntryQuery) -> Tuple[List[AccountingEntry], int]:
        """One page of entries matching the query, plus the total match count."""
        filter = self.build_search_filter(company_id, query)
        direction = ASCENDING if query.sort_order == "asc" else DESCENDING
        fields = _SORT_FIELDS[query.sort_by]
        if query.sort_by != "number":
            # ties fall back to book order
            fields = fields + _SORT_FIELDS["number"]
        sort = [(field, direction) for field in fields]
        items = await self.list(filter, skip=query.skip, limit=query.limit, sort=sort)
        total = await self.count(filter)
        return items, total

    async def find_booked_for_account(self, account_id: str, start: Optional[date] = None,
                                      end: Optional[date] = None,
                                      journal: Optional[Journal] = None) -> List[AccountingEntry]:
        """Posted/validated entries with at least one line on the account, in book order."""
        filter: Dict[str, Any] = {
            "lines.account": account_id,
            "status": {"$in": BOOKED_STATUSES},
        }
        dates = date_range_filter(start, end)
        if dates:
            filter["date"] = dates
        if journal:
            filter["journal"] = journal.value
        cursor = self.collection.find(filter).sort([("date", ASCENDING), ("sequence", ASCENDING)])
        docs = await cursor.to_list(length=None)
        return [self.model_cls.from_mongo(doc) for doc in docs]

    async def find_booked(self, company_id: str, start: Optional[date] = None,
                          end: Optional[date] = None) -> List[AccountingEntry]:
        filter: Dict[str, Any] = {
            "company_id": company_id,
            "status": {"$in": BOOKED_STATUSES},
        }
        dates = date_range_filter(start, end)
        if dates:
            filter["date"] = dates
        cursor = self.collection.find(filter).sort([("date", ASCENDING), ("sequence", ASCENDING)])
        docs = await cursor.to_list(length=None)
        return [self.model_cls.from_mongo(doc) for doc in docs]

    async def count_unposted_in_period(self, company_id: str, period: str) -> int:
        return await self.count({
            "company_id": company_id,
            "period": period,
            "status": EntryStatus.DRAFT.value,
        })
