"""
Generic repository over one SQLAlchemy model.

Reads go through ``where``/``where_first``; sync writes go through
``bulk_upsert``, the only insert-or-update path for provider data.

Example:
    class TeamRepository(BaseRepository[Team]):
        def find_by_external_ref(self, external_ref: str) -> Optional[Team]:
            return self.where_first(Team.external_ref == external_ref)
"""
from dataclasses import dataclass
from typing import TypeVar, Generic, Type, Optional, List, Any, Dict, Iterable

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Query, Session

T = TypeVar("T")

# Dialects whose INSERT supports ON CONFLICT ... DO UPDATE ... RETURNING
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass(frozen=True)
class UpsertedRow:
    """One row returned by ``bulk_upsert``; ``created`` is False when an existing row was updated."""
    id: int
    external_ref: str
    created: bool


class BaseRepository(Generic[T]):
    """
    Base repository class providing common data access methods.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
    """

    def __init__(self, model_type: Type[T], db: Session):
        self.model_type = model_type
        self.db = db

    # ========================================================================
    # Reads
    # ========================================================================

    def find_by_id(self, id: int) -> Optional[T]:
        """Find a single record by primary key."""
        return self.db.get(self.model_type, id)

    def query(self) -> Query:
        """Get a new query object for this model."""
        return self.db.query(self.model_type)

    def where(self, *criterion) -> List[T]:
        """Filter records using SQLAlchemy expressions."""
        return self.db.query(self.model_type).filter(*criterion).all()

    def where_first(self, *criterion) -> Optional[T]:
        """Filter records using SQLAlchemy expressions and return first match."""
        return self.db.query(self.model_type).filter(*criterion).first()

    # ========================================================================
    # Writes
    # ========================================================================

    def create(self, **kwargs) -> T:
        """
        Create a new record.

        Returns:
            The created record (flushed so its id is populated, not committed)
        """
        instance = self.model_type(**kwargs)
        self.db.add(instance)
        self.db.flush()
        return instance

    def bulk_upsert(
        self,
        items: List[Dict[str, Any]],
        update_columns: Iterable[str],
        conflict_column: str = "external_ref",
    ) -> List[UpsertedRow]:
        """
        Insert-or-update many records in one statement.

        Rows conflicting on ``conflict_column`` get ``update_columns``
        overwritten from the incoming values; nothing else is touched.

        Args:
            items: Row dicts; every dict must carry the same keys
            update_columns: Columns to overwrite on conflict
            conflict_column: Unique column that identifies a row

        Returns:
            One UpsertedRow per affected row, flagged created or updated.
            Order follows the database, not ``items``.
        """
        if not items:
            return []

        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise NotImplementedError(f"bulk upsert is not supported on {dialect}")

        key_column = getattr(self.model_type, conflict_column)
        keys = [item[conflict_column] for item in items]
        existing = set(
            self.db.execute(select(key_column).where(key_column.in_(keys))).scalars()
        )

        stmt = insert(self.model_type).values(items)
        stmt = stmt.on_conflict_do_update(
            index_elements=[conflict_column],
            set_={column: stmt.excluded[column] for column in update_columns},
        ).returning(self.model_type.id, key_column)

        rows = self.db.execute(stmt).all()
        return [
            UpsertedRow(id=row_id, external_ref=ref, created=ref not in existing)
            for row_id, ref in rows
        ]

    # ========================================================================
    # Save Operations
    # ========================================================================

    def save(self) -> None:
        """Commit pending changes to the database."""
        self.db.commit()

    def refresh(self, instance: T) -> T:
        """Refresh an instance from the database."""
        self.db.refresh(instance)
        return instance

    def rollback(self) -> None:
        """Rollback pending changes."""
        self.db.rollback()
