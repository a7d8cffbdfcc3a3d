"""Base repository class with common CRUD operations."""

from typing import TypeVar, Generic, List, Optional, Dict, Any, Union
from abc import ABC
from beanie import Document
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING
from app.database_utils import handle_db_errors

T = TypeVar('T', bound=Document)


def to_object_id(value: Union[str, ObjectId]) -> Optional[ObjectId]:
    """Convert to ObjectId, returning None for malformed ids."""
    if isinstance(value, ObjectId):
        return value
    if not value:
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


class BaseRepository(Generic[T], ABC):
    """Base repository class with common async CRUD operations."""

    def __init__(self, model_class: type[T]):
        self.model_class = model_class

    @handle_db_errors
    async def create(self, data: Union[Dict[str, Any], T]) -> T:
        """Create a new document."""
        if isinstance(data, dict):
            document = self.model_class(**data)
        else:
            document = data

        await document.insert()
        return document

    @handle_db_errors
    async def get_by_id(self, document_id: Union[str, ObjectId]) -> Optional[T]:
        """Get document by ID."""
        object_id = to_object_id(document_id)
        if object_id is None:
            return None
        return await self.model_class.get(object_id)

    @handle_db_errors
    async def save(self, document: T) -> T:
        """Persist changes made to a loaded document."""
        await document.save()
        return document

    @handle_db_errors
    async def delete(self, document_id: Union[str, ObjectId]) -> bool:
        """Delete document by ID."""
        document = await self.get_by_id(document_id)
        if document:
            await document.delete()
            return True
        return False

    @handle_db_errors
    async def find_all(self,
                       filter_dict: Optional[Dict[str, Any]] = None,
                       sort_by: Optional[str] = None,
                       sort_order: int = DESCENDING,
                       skip: int = 0,
                       limit: Optional[int] = None) -> List[T]:
        """Find all documents matching filter with pagination and sorting."""
        query = self.model_class.find(filter_dict or {})

        if sort_by:
            query = query.sort([(sort_by, sort_order)])

        if skip > 0:
            query = query.skip(skip)

        if limit:
            query = query.limit(limit)

        return await query.to_list()

    @handle_db_errors
    async def find_one(self, filter_dict: Dict[str, Any]) -> Optional[T]:
        """Find single document matching filter."""
        return await self.model_class.find_one(filter_dict)

    @handle_db_errors
    async def count(self, filter_dict: Optional[Dict[str, Any]] = None) -> int:
        """Count documents matching filter."""
        return await self.model_class.find(filter_dict or {}).count()

    @handle_db_errors
    async def aggregate(self, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Execute aggregation pipeline."""
        return await self.model_class.aggregate(pipeline).to_list(length=None)
