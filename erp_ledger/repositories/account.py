from typing import Dict, Iterable, Optional
from erp_ledger.repositories.base import BaseRepository, to_object_id
from erp_ledger.models.accounting import Account

class AccountRepository(BaseRepository[Account]):

    async def get_by_code(self, company_id: str, code: str) -> Optional[Account]:
        doc = await self.collection.find_one({"company_id": company_id, "code": code})
        return self.model_cls.from_mongo(doc) if doc else None

    async def get_many(self, ids: Iterable[str]) -> Dict[str, Account]:
        """Accounts keyed by id; unknown or malformed ids are skipped."""
        oids = [oid for oid in (to_object_id(i) for i in set(ids)) if oid is not None]
        if not oids:
            return {}
        cursor = self.collection.find({"_id": {"$in": oids}})
        docs = await cursor.to_list(length=None)
        accounts = [self.model_cls.from_mongo(doc) for doc in docs]
        return {account.id: account for account in accounts}
