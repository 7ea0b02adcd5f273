import uuid
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union
from pydantic import BaseModel

ModelType = TypeVar("ModelType", bound=BaseModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType]):
    """In-memory registry keyed by id. Returned objects are the stored instances."""

    id_prefix: str = ""

    def __init__(self, model: Type[ModelType]):
        self.model = model
        self._records: Dict[str, ModelType] = {}

    def _new_id(self) -> str:
        return f"{self.id_prefix}{uuid.uuid4().hex[:12]}"

    def get(self, id: Any) -> Optional[ModelType]:
        return self._records.get(id)

    def get_multi(self, *, skip: int = 0, limit: int = 100) -> List[ModelType]:
        return list(self._records.values())[skip:skip + limit]

    def get_all(self) -> List[ModelType]:
        return list(self._records.values())

    def create(self, *, obj_in: Union[CreateSchemaType, Dict[str, Any]], id: Optional[str] = None) -> ModelType:
        obj_in_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump()
        obj_id = id or obj_in_data.get("id") or self._new_id()
        db_obj = self.model(**{**obj_in_data, "id": obj_id})
        self._records[obj_id] = db_obj
        return db_obj

    def add(self, db_obj: ModelType) -> ModelType:
        self._records[db_obj.id] = db_obj
        return db_obj

    def update(self, *, db_obj: ModelType, obj_in: Union[BaseModel, Dict[str, Any]]) -> ModelType:
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if field in self.model.model_fields:
                setattr(db_obj, field, value)
        self._records[db_obj.id] = db_obj
        return db_obj

    def delete(self, *, id: Any) -> Optional[ModelType]:
        return self._records.pop(id, None)

    def clear(self):
        self._records.clear()
