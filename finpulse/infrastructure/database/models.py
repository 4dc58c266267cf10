"""SQLAlchemy ORM model for per-user entity documents"""

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class Document(Base):
    """One entity stored as a JSON payload in a per-user collection"""

    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("collection", "owner_id", "entity_id", name="uq_document_identity"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    collection = Column(String(64), nullable=False, index=True)  # loans | incomes | expenses | investments | user_preferences
    owner_id = Column(Text, nullable=False, index=True)
    entity_id = Column(Text, nullable=False)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
