"""SQLAlchemy models for phoneledger database.

Every row that a unit of work may rewrite carries a ``version`` column used
for optimistic concurrency: an UPDATE or DELETE issued against a row that
changed since it was read affects no rows and fails the commit.
"""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _now() -> datetime:
    return datetime.now(UTC)


class Entity(Base):
    """Customer, middleman or supplier."""

    __tablename__ = "entities"

    id = Column(String, primary_key=True)
    kind = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    balance = Column(Numeric(14, 2), nullable=False, default=0)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    history = relationship(
        "HistoryEntry",
        back_populates="entity",
        cascade="all, delete-orphan",
        order_by="HistoryEntry.id",
    )


class HistoryEntry(Base):
    """Reference from an entity to a purchase or sale it took part in."""

    __tablename__ = "entity_history"

    id = Column(Integer, primary_key=True)
    entity_id = Column(String, ForeignKey("entities.id"), nullable=False, index=True)
    role = Column(String, nullable=False)
    transaction_type = Column(String, nullable=False)
    transaction_id = Column(String, nullable=False, index=True)
    timestamp = Column(DateTime, default=_now, nullable=False)

    # Relationships
    entity = relationship("Entity", back_populates="history")


class Account(Base):
    """Cash, bank or credit card singleton."""

    __tablename__ = "accounts"

    kind = Column(String, primary_key=True)
    amount = Column(Numeric(14, 2), nullable=False, default=0)
    updated_at = Column(DateTime, default=_now, nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class CurrencyBalance(Base):
    """One currency held by one owner (entity or "myself")."""

    __tablename__ = "currency_balances"

    owner_id = Column(String, primary_key=True)
    currency = Column(String, primary_key=True)
    amount = Column(Numeric(14, 2), nullable=False, default=0)
    updated_at = Column(DateTime, default=_now, nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class Brand(Base):
    """Phone brand."""

    __tablename__ = "brands"

    id = Column(String, primary_key=True)
    name = Column(String, unique=True, nullable=False)

    # Relationships
    models = relationship("Model", back_populates="brand", cascade="all, delete-orphan")


class Model(Base):
    """Phone model under a brand."""

    __tablename__ = "models"

    id = Column(String, primary_key=True)
    brand_id = Column(String, ForeignKey("brands.id"), nullable=False)
    name = Column(String, nullable=False)

    __table_args__ = (UniqueConstraint("brand_id", "name", name="uq_brand_model_name"),)

    # Relationships
    brand = relationship("Brand", back_populates="models")
    phones = relationship("Phone", back_populates="model")


class Phone(Base):
    """Physical unit in stock."""

    __tablename__ = "phones"

    id = Column(String, primary_key=True)
    model_id = Column(String, ForeignKey("models.id"), nullable=False)
    imei = Column(String, nullable=False, index=True)
    capacity = Column(String, nullable=False)
    capacity_unit = Column(String, nullable=False)
    color = Column(String, nullable=True)
    carrier = Column(String, nullable=True)
    storage_location = Column(String, nullable=True)
    unit_cost = Column(Numeric(14, 2), nullable=False)
    status = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    model = relationship("Model", back_populates="phones")


class ImeiIndex(Base):
    """Flat IMEI lookup mirroring a live phone; one row per IMEI."""

    __tablename__ = "imei_index"

    imei = Column(String, primary_key=True)
    phone_id = Column(String, ForeignKey("phones.id"), nullable=False)
    brand_name = Column(String, nullable=False)
    model_name = Column(String, nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class LedgerRecord(Base):
    """Stored transaction of any type; variant fields live in ``payload``."""

    __tablename__ = "ledger_records"

    id = Column(String, primary_key=True)
    transaction_type = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class OrderNumber(Base):
    """Reserved purchase/sale order number."""

    __tablename__ = "order_numbers"

    number = Column(Integer, primary_key=True)
    transaction_type = Column(String, nullable=False)
    transaction_id = Column(String, nullable=False)


def _begin_on_first_read(engine: Engine) -> None:
    """Make SQLite start the transaction at the first statement, reads included.

    pysqlite otherwise defers BEGIN until the first write, so the reads of a
    unit of work would each see a different committed state. WAL mode gives
    every read transaction a stable snapshot; committing on a snapshot that
    another writer has since moved past fails with "database is locked".
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    if engine.dialect.name == "sqlite":
        _begin_on_first_read(engine)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
