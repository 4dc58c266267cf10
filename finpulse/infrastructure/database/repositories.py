"""Data access layer for entity documents"""

import uuid
from typing import Generic, List, Sequence, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from finpulse.config import settings
from finpulse.domain.exceptions import NotFoundError, ValidationError
from finpulse.domain.models import UserPreferences
from finpulse.domain.ports import FieldFilter
from finpulse.infrastructure.database.codecs import (
    ExpenseDocument,
    IncomeDocument,
    InvestmentDocument,
    LoanDocument,
    PreferencesDocument,
    decode,
    encode,
)
from finpulse.infrastructure.database.models import Document

T = TypeVar("T")

LOANS = "loans"
INCOMES = "incomes"
EXPENSES = "expenses"
INVESTMENTS = "investments"
USER_PREFERENCES = "user_preferences"


class DocumentRepository(Generic[T]):
    """
    Entity store over one collection of the documents table.

    Changes are flushed, not committed; the caller owns the transaction.
    Queries run on the synchronous Session in the calling task, so each
    call blocks the event loop for the duration of its query.
    """

    def __init__(self, db: Session, collection: str, codec: Type[BaseModel]):
        self.db = db
        self.collection = collection
        self.codec = codec

    async def get_all(self, owner_id: str) -> List[T]:
        rows = (
            self.db.query(Document)
            .filter(Document.collection == self.collection, Document.owner_id == owner_id)
            .order_by(Document.id)
            .all()
        )
        return [decode(self.codec, row.payload) for row in rows]

    async def get_filtered(self, owner_id: str, predicates: Sequence[FieldFilter]) -> List[T]:
        """Filter in memory so predicates work on any payload field"""
        entities = await self.get_all(owner_id)
        return [e for e in entities if all(p.matches(e) for p in predicates)]

    async def get_by_id(self, owner_id: str, entity_id: str) -> T | None:
        row = self._row(owner_id, entity_id)
        return decode(self.codec, row.payload) if row else None

    async def create(self, entity: T) -> T:
        """
        Persist a new entity, assigning an id when it has none.

        Raises:
            ValidationError: Entity cannot be encoded or the id already exists
        """
        if not entity.id:
            entity.id = str(uuid.uuid4())

        row = Document(
            collection=self.collection,
            owner_id=entity.owner_id,
            entity_id=entity.id,
            payload=encode(self.codec, entity),
        )
        # A duplicate rolls back this insert only; earlier flushed changes survive
        try:
            with self.db.begin_nested():
                self.db.add(row)
        except IntegrityError as e:
            raise ValidationError(f"{self.collection} entity {entity.id} already exists") from e
        return entity

    async def update(self, entity: T) -> T:
        row = self._row(entity.owner_id, entity.id)
        if row is None:
            raise NotFoundError(f"{self.collection} entity {entity.id} not found")

        row.payload = encode(self.codec, entity)
        self.db.flush()
        return entity

    async def delete(self, owner_id: str, entity_id: str) -> None:
        row = self._row(owner_id, entity_id)
        if row is None:
            raise NotFoundError(f"{self.collection} entity {entity_id} not found")

        self.db.delete(row)
        self.db.flush()

    def _row(self, owner_id: str, entity_id: str) -> Document | None:
        return (
            self.db.query(Document)
            .filter(
                Document.collection == self.collection,
                Document.owner_id == owner_id,
                Document.entity_id == entity_id,
            )
            .first()
        )


def loan_repository(db: Session) -> DocumentRepository:
    return DocumentRepository(db, LOANS, LoanDocument)


def income_repository(db: Session) -> DocumentRepository:
    return DocumentRepository(db, INCOMES, IncomeDocument)


def expense_repository(db: Session) -> DocumentRepository:
    return DocumentRepository(db, EXPENSES, ExpenseDocument)


def investment_repository(db: Session) -> DocumentRepository:
    return DocumentRepository(db, INVESTMENTS, InvestmentDocument)


class DocumentPreferencesProvider:
    """User preferences stored as one document per user"""

    def __init__(self, db: Session, default_currency: str | None = None):
        self.db = db
        self.default_currency = default_currency or settings.default_currency

    async def get_preferences(self, user_id: str) -> UserPreferences:
        row = self._row(user_id)
        if row is None:
            return UserPreferences(primary_currency=self.default_currency)

        payload = {"primary_currency": self.default_currency, **row.payload}
        return decode(PreferencesDocument, payload)

    async def save_preferences(self, user_id: str, preferences: UserPreferences) -> UserPreferences:
        payload = encode(PreferencesDocument, preferences)
        row = self._row(user_id)
        if row is None:
            self.db.add(Document(collection=USER_PREFERENCES, owner_id=user_id, entity_id=user_id, payload=payload))
        else:
            row.payload = payload
        self.db.flush()
        return preferences

    def _row(self, user_id: str) -> Document | None:
        return (
            self.db.query(Document)
            .filter(Document.collection == USER_PREFERENCES, Document.owner_id == user_id)
            .first()
        )
