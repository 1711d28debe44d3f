"""Reference fields that arrive either as a bare id or a populated object.

The survey store returns relation fields in two shapes depending on how
deeply a query expanded them: ``7`` or ``{"id": 7, "name": ...}``. Both are
normalised into a single ``Ref`` on validation so the rest of the code reads
``ref.id`` and never inspects the raw shape.
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, model_validator

T = TypeVar("T")


class Ref(BaseModel, Generic[T]):
    """Reference to another entity, populated or not.

    Attributes:
        id: Identifier of the referenced entity
        entity: The populated entity, or None when only the id was supplied
    """
    id: int
    entity: Optional[T] = None

    @model_validator(mode="before")
    @classmethod
    def normalize_shape(cls, value: Any) -> Any:
        """Accept an int, a populated mapping/model, or an explicit Ref."""
        if isinstance(value, Ref):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return {"id": value}
        if isinstance(value, BaseModel):
            return {"id": getattr(value, "id"), "entity": value}
        if isinstance(value, dict):
            if "entity" in value or set(value) <= {"id"}:
                return value
            return {"id": value.get("id"), "entity": value}
        return value

    @property
    def is_populated(self) -> bool:
        """Whether the referenced entity was expanded."""
        return self.entity is not None


def ref_id(ref: Optional[Ref]) -> Optional[int]:
    """Resolve a possibly-missing reference to its id."""
    return ref.id if ref is not None else None


def ref_entity(ref: Optional[Ref[T]]) -> Optional[T]:
    """Resolve a possibly-missing reference to its populated entity."""
    return ref.entity if ref is not None else None
