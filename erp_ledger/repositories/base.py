from typing import Generic, TypeVar, Any, Dict, List, Optional, Sequence, Tuple
from motor.motor_asyncio import AsyncIOMotorCollection
from bson import ObjectId
from bson.errors import InvalidId
from erp_ledger.models.base import MongoModel

T = TypeVar("T", bound=MongoModel)

def to_object_id(id: str) -> Optional[ObjectId]:
    """ObjectId for a path/query id, or None when it cannot be one."""
    try:
        return ObjectId(id)
    except (InvalidId, TypeError):
        return None

class BaseRepository(Generic[T]):
    def __init__(self, collection: AsyncIOMotorCollection, model_cls: type[T]):
        self.collection = collection
        self.model_cls = model_cls

    async def get(self, id: str) -> Optional[T]:
        """Get a document by ID."""
        oid = to_object_id(id)
        if oid is None:
            return None
        doc = await self.collection.find_one({"_id": oid})
        return self.model_cls.from_mongo(doc) if doc else None

    async def list(self, filter: Optional[Dict[str, Any]] = None, skip: int = 0, limit: int = 100,
                   sort: Optional[Sequence[Tuple[str, int]]] = None) -> List[T]:
        """List documents with optional filter, sort and pagination."""
        cursor = self.collection.find(filter or {})
        if sort:
            cursor = cursor.sort(list(sort))
        cursor = cursor.skip(skip).limit(limit)
        docs = await cursor.to_list(length=limit)
        return [self.model_cls.from_mongo(doc) for doc in docs]

    async def create(self, model: T) -> T:
        """Create a new document."""
        data = model.to_mongo()
        result = await self.collection.insert_one(data)
        model.id = str(result.inserted_id)
        return model

    async def update(self, id: str, update_data: Dict[str, Any]) -> Optional[T]:
        """Partial update by ID; returns the fresh document."""
        oid = to_object_id(id)
        if oid is None:
            return None
        await self.collection.update_one({"_id": oid}, {"$set": update_data})
        return await self.get(id)

    async def delete(self, id: str) -> bool:
        """Delete a document by ID."""
        oid = to_object_id(id)
        if oid is None:
            return False
        result = await self.collection.delete_one({"_id": oid})
        return result.deleted_count > 0

    async def count(self, filter: Optional[Dict[str, Any]] = None) -> int:
        """Count documents matching a filter."""
        return await self.collection.count_documents(filter or {})
