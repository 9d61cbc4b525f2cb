"""Document store over SQLAlchemy.

Pattern: one table per collection, exposed through a small document-style API
(find / find_one / insert_one / update_one / update_many / delete_one) keyed on
the camelCase field names used on the wire. Filters are exact-match equality.

The store is constructed once at process start and handed to each component;
there is no module-level connection.
"""
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from doctors_portal.api.database_models import (
    Base,
    AppointmentOption,
    Booking,
    User,
    Doctor,
    Payment,
)
from doctors_portal.errors import DuplicateKeyError, StoreTimeout, StoreUnavailable
from doctors_portal.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class InsertResult:
    acknowledged: bool
    inserted_id: Optional[str]

    def to_dict(self) -> dict:
        return {"acknowledged": self.acknowledged, "insertedId": self.inserted_id}


@dataclass
class UpdateResult:
    acknowledged: bool
    matched_count: int
    modified_count: int
    upserted_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "acknowledged": self.acknowledged,
            "matchedCount": self.matched_count,
            "modifiedCount": self.modified_count,
            "upsertedId": self.upserted_id,
            "upsertedCount": 1 if self.upserted_id else 0,
        }


@dataclass
class DeleteResult:
    acknowledged: bool
    deleted_count: int

    def to_dict(self) -> dict:
        return {"acknowledged": self.acknowledged, "deletedCount": self.deleted_count}


@contextmanager
def store_errors():
    """Translate SQLAlchemy failures into the store error kinds."""
    try:
        yield
    except IntegrityError as e:
        raise DuplicateKeyError(detail=str(e.orig)) from e
    except PoolTimeoutError as e:
        logger.error("store_timeout", error=str(e))
        raise StoreTimeout(detail=str(e)) from e
    except OperationalError as e:
        # SQLite reports busy-timeout expiry as "database is locked"
        if "locked" in str(e.orig).lower():
            logger.error("store_timeout", error=str(e.orig))
            raise StoreTimeout(detail=str(e.orig)) from e
        logger.error("store_unavailable", error=str(e.orig))
        raise StoreUnavailable(detail=str(e.orig)) from e
    except SQLAlchemyError as e:
        logger.error("store_unavailable", error=str(e))
        raise StoreUnavailable(detail=str(e)) from e


class Collection:
    """Document-style access to one table."""

    def __init__(self, store: "DocumentStore", model):
        self.store = store
        self.model = model
        self.name = model.__tablename__

    def _columns(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        columns = {}
        for key, value in doc.items():
            if key == "_id":
                columns["id"] = value
            elif key in self.model.FIELDS:
                columns[self.model.FIELDS[key]] = value
            else:
                raise ValueError(f"Unknown field '{key}' for collection '{self.name}'")
        return columns

    @contextmanager
    def _session(self, session: Optional[Session]):
        if session is not None:
            with store_errors():
                yield session
        else:
            with self.store.transaction() as db:
                yield db

    def _query(self, db: Session, filter: Optional[Dict[str, Any]]):
        return db.query(self.model).filter_by(**self._columns(filter or {}))

    def find(
        self,
        filter: Optional[Dict[str, Any]] = None,
        projection: Optional[Iterable[str]] = None,
        session: Optional[Session] = None,
    ) -> List[dict]:
        """Return all documents matching the equality filter, in insertion order."""
        with self._session(session) as db:
            rows = self._query(db, filter).order_by(self.model.id).all()
            docs = [row.to_document() for row in rows]

        if projection is not None:
            keys = ["_id", *projection]
            docs = [{k: doc[k] for k in keys if k in doc} for doc in docs]
        return docs

    def find_one(self, filter: Dict[str, Any], session: Optional[Session] = None) -> Optional[dict]:
        with self._session(session) as db:
            row = self._query(db, filter).first()
            return row.to_document() if row else None

    def insert_one(self, doc: Dict[str, Any], session: Optional[Session] = None) -> InsertResult:
        with self._session(session) as db:
            row = self.model(**self._columns(doc))
            db.add(row)
            db.flush()
            return InsertResult(acknowledged=True, inserted_id=row.id)

    def update_one(
        self,
        filter: Dict[str, Any],
        values: Dict[str, Any],
        upsert: bool = False,
        session: Optional[Session] = None,
    ) -> UpdateResult:
        """Set ``values`` on the first match; insert filter+values when upserting."""
        columns = self._columns(values)
        with self._session(session) as db:
            row = self._query(db, filter).first()
            if row is not None:
                modified = self._apply(row, columns)
                db.flush()
                return UpdateResult(True, matched_count=1, modified_count=int(modified))

            if not upsert:
                return UpdateResult(True, matched_count=0, modified_count=0)

            row = self.model(**{**self._columns(filter), **columns})
            db.add(row)
            db.flush()
            return UpdateResult(True, matched_count=0, modified_count=0, upserted_id=row.id)

    def update_many(
        self,
        filter: Optional[Dict[str, Any]],
        values: Dict[str, Any],
        session: Optional[Session] = None,
    ) -> UpdateResult:
        columns = self._columns(values)
        with self._session(session) as db:
            rows = self._query(db, filter).all()
            modified = sum(1 for row in rows if self._apply(row, columns))
            db.flush()
            return UpdateResult(True, matched_count=len(rows), modified_count=modified)

    def delete_one(self, filter: Dict[str, Any], session: Optional[Session] = None) -> DeleteResult:
        with self._session(session) as db:
            row = self._query(db, filter).first()
            if row is None:
                return DeleteResult(True, deleted_count=0)
            db.delete(row)
            db.flush()
            return DeleteResult(True, deleted_count=1)

    @staticmethod
    def _apply(row, columns: Dict[str, Any]) -> bool:
        changed = False
        for attr, value in columns.items():
            if getattr(row, attr) != value:
                setattr(row, attr, value)
                changed = True
        return changed


class DocumentStore:
    """
    Connection to the backing database plus one Collection per entity.

    Args:
        database_url: SQLAlchemy connection string
        timeout: Seconds to wait for a pooled connection (or SQLite lock)
    """

    def __init__(self, database_url: str, timeout: float = 10.0):
        engine_kwargs = {"pool_pre_ping": True}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": timeout}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # In-memory databases exist per connection; share a single one
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_timeout"] = timeout

        self.engine = create_engine(database_url, **engine_kwargs)
        with store_errors():
            Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        self.appointment_options = Collection(self, AppointmentOption)
        self.bookings = Collection(self, Booking)
        self.users = Collection(self, User)
        self.doctors = Collection(self, Doctor)
        self.payments = Collection(self, Payment)

    @contextmanager
    def transaction(self):
        """
        Unit of work: collection calls given the yielded session share one
        transaction, committed on exit and rolled back on error.

        Usage:
            with store.transaction() as db:
                store.payments.insert_one(doc, session=db)
                store.bookings.update_one(filter, values, session=db)
        """
        with store_errors():
            with self.SessionLocal() as db:
                try:
                    yield db
                    db.commit()
                except Exception:
                    db.rollback()
                    raise

    def close(self):
        """Dispose of pooled connections. Call during application shutdown."""
        self.engine.dispose()
