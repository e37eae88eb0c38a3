from datetime import datetime
from typing import Optional
from erp_ledger.repositories.base import BaseRepository, to_object_id
from erp_ledger.models.accounting import FiscalYear

class FiscalYearRepository(BaseRepository[FiscalYear]):

    async def find_for_month(self, company_id: str, year: int, month: int) -> Optional[FiscalYear]:
        """Fiscal year whose span contains the given month."""
        point = datetime(year, month, 1)
        doc = await self.collection.find_one({
            "company_id": company_id,
            "start_date": {"$lte": point},
            "end_date": {"$gte": point},
        })
        return self.model_cls.from_mongo(doc) if doc else None

    async def mark_period_closed(self, fiscal_year_id: str, month: int, closed_by: Optional[str],
                                 notes: Optional[str] = None) -> bool:
        """Close one period; returns False when it was already closed."""
        result = await self.collection.update_one(
            {
                "_id": to_object_id(fiscal_year_id),
                "periods": {"$elemMatch": {"month": month, "is_closed": False}},
            },
            {"$set": {
                "periods.$.is_closed": True,
                "periods.$.closed_by": closed_by,
                "periods.$.closed_at": datetime.utcnow(),
                "periods.$.notes": notes,
            }}
        )
        return result.modified_count > 0
