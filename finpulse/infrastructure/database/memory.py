"""In-memory entity store and preferences for tests and ephemeral use"""

import copy
import uuid
from typing import Dict, Generic, List, Sequence, TypeVar

from finpulse.domain.exceptions import NotFoundError, ValidationError
from finpulse.domain.models import UserPreferences
from finpulse.domain.ports import FieldFilter

T = TypeVar("T")


class InMemoryEntityStore(Generic[T]):
    """Entities per owner in insertion order; reads and writes copy so callers never share state"""

    def __init__(self, entities: Sequence[T] = ()):
        self._entities: Dict[str, Dict[str, T]] = {}
        for entity in entities:
            self._entities.setdefault(entity.owner_id, {})[entity.id] = copy.deepcopy(entity)

    async def get_all(self, owner_id: str) -> List[T]:
        return [copy.deepcopy(e) for e in self._entities.get(owner_id, {}).values()]

    async def get_filtered(self, owner_id: str, predicates: Sequence[FieldFilter]) -> List[T]:
        return [e for e in await self.get_all(owner_id) if all(p.matches(e) for p in predicates)]

    async def get_by_id(self, owner_id: str, entity_id: str) -> T | None:
        entity = self._entities.get(owner_id, {}).get(entity_id)
        return copy.deepcopy(entity) if entity is not None else None

    async def create(self, entity: T) -> T:
        if not entity.id:
            entity.id = str(uuid.uuid4())

        owned = self._entities.setdefault(entity.owner_id, {})
        if entity.id in owned:
            raise ValidationError(f"Entity {entity.id} already exists")
        owned[entity.id] = copy.deepcopy(entity)
        return entity

    async def update(self, entity: T) -> T:
        owned = self._entities.get(entity.owner_id, {})
        if entity.id not in owned:
            raise NotFoundError(f"Entity {entity.id} not found")
        owned[entity.id] = copy.deepcopy(entity)
        return entity

    async def delete(self, owner_id: str, entity_id: str) -> None:
        owned = self._entities.get(owner_id, {})
        if entity_id not in owned:
            raise NotFoundError(f"Entity {entity_id} not found")
        del owned[entity_id]


class InMemoryPreferencesProvider:
    def __init__(self, preferences: Dict[str, UserPreferences] | None = None, default_currency: str = "USD"):
        self._preferences = dict(preferences or {})
        self.default_currency = default_currency

    async def get_preferences(self, user_id: str) -> UserPreferences:
        return self._preferences.get(user_id) or UserPreferences(primary_currency=self.default_currency)
