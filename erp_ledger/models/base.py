from typing import Annotated, Any, Dict, Optional, Set, Type, TypeVar
from pydantic import BaseModel, BeforeValidator, Field, ConfigDict, StringConstraints
from bson import ObjectId

# Stored _id values come back as ObjectId; expose them as strings
PyObjectId = Annotated[str, BeforeValidator(str)]

# Shape of a reference to another document (24 hex chars). Existence is
# checked by the persistence layer, never here.
OBJECT_ID_PATTERN = r"^[0-9a-fA-F]{24}$"
ObjectIdStr = Annotated[str, StringConstraints(strip_whitespace=True, pattern=OBJECT_ID_PATTERN)]

T = TypeVar("T", bound="MongoModel")

class MongoModel(BaseModel):
    """
    Base model for ledger documents with _id handling and serialization helpers.
    """
    id: PyObjectId | None = Field(default=None, alias="_id")

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        json_encoders={
            ObjectId: str
        }
    )

    @classmethod
    def from_mongo(cls: Type[T], data: Optional[Dict[str, Any]]) -> Optional[T]:
        """Convert a MongoDB document to the model without mutating the document."""
        if not data:
            return None
        data = dict(data)
        id = data.pop("_id", None)
        return cls(id=id, **data)

    def to_mongo(self, exclude_none: bool = False, exclude: Optional[Set[str]] = None) -> Dict[str, Any]:
        """Convert the model to a MongoDB document; a missing id is left for Mongo to assign."""
        data = self.model_dump(by_alias=True, exclude_none=exclude_none, exclude=exclude)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data
