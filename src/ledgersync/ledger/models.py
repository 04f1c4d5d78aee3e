"""SQLAlchemy models for the local ledger database."""

from datetime import datetime, UTC
from uuid import uuid4
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    DateTime,
    Date,
    Boolean,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _new_id() -> str:
    return str(uuid4())


class Account(Base):
    """Ledger account model."""

    __tablename__ = "accounts"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False, default="checking")
    offbudget = Column(Boolean, default=False, nullable=False)
    closed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    transactions = relationship("Transaction", back_populates="account", cascade="all, delete-orphan")


class Note(Base):
    """Free-text note keyed by the id of the object it annotates."""

    __tablename__ = "notes"

    id = Column(String, primary_key=True)
    note = Column(Text, nullable=False)


class Transaction(Base):
    """Transaction model. Amounts are integer minor units."""

    __tablename__ = "transactions"

    id = Column(String, primary_key=True, default=_new_id)
    account_id = Column(String, ForeignKey("accounts.id"), nullable=False)
    imported_id = Column(String, nullable=True)
    date = Column(Date, nullable=False)
    amount = Column(Integer, nullable=False)
    payee_name = Column(String, nullable=True)
    imported_payee = Column(String, nullable=True)
    category = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    cleared = Column(Boolean, default=False, nullable=False)
    starting_balance = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Re-imports of the same external identifier update the existing row
    __table_args__ = (UniqueConstraint("account_id", "imported_id", name="uq_account_imported_id"),)

    # Relationships
    account = relationship("Account", back_populates="transactions")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
