"""
Media Repository - relational store for media library records.

Rows are normalized into strict MediaItem models at this boundary; loosely
shaped rows never reach the pipeline.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import Column, DateTime, String, Text, create_engine, delete, select
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from core.constants import LibraryConstants
from core.utils.formatting import name_from_url
from schemas import MediaItem

logger = logging.getLogger(__name__)

Base = declarative_base()


class MediaRecord(Base):
    """Row of the media library table"""

    __tablename__ = LibraryConstants.TABLE_NAME

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False, index=True)
    url = Column(Text, nullable=False)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<MediaRecord(id={self.id}, name='{self.name}')>"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MediaRepository:
    """Insert, delete and query media records"""

    def __init__(self, database_url: str):
        """
        Initialize the repository and create the table if needed

        Args:
            database_url: SQLAlchemy URL, e.g. sqlite:///./data/media.db
        """
        engine_kwargs = {}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # Single shared connection so every session sees the same in-memory DB
                engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(database_url, **engine_kwargs)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        Base.metadata.create_all(self.engine)

        logger.info(f"Media repository initialized ({self.engine.url.get_backend_name()})")

    @staticmethod
    def to_item(record: MediaRecord) -> Optional[MediaItem]:
        """
        Normalize a row into a MediaItem.

        Missing names fall back to the URL's last segment. Rows that still
        do not validate are dropped.

        Returns:
            MediaItem, or None for a malformed row
        """
        name = (record.name or "").strip() or name_from_url(record.url or "")
        created_at = record.created_at
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)

        try:
            return MediaItem(
                id=record.id,
                url=record.url,
                name=name,
                created_at=created_at,
            )
        except ValidationError as e:
            logger.warning(
                f"Dropping malformed media row {record.id!r}: {e.error_count()} error(s)"
            )
            return None

    def insert(self, owner_id: str, url: str, name: str) -> MediaItem:
        """
        Insert a new record.

        Args:
            owner_id: Owner identity
            url: Public URL of the image
            name: Display name

        Returns:
            Stored MediaItem
        """
        record = MediaRecord(
            id=str(uuid.uuid4()),
            user_id=owner_id,
            url=url,
            name=name,
            created_at=_utcnow(),
        )
        with self._session_factory() as session, session.begin():
            session.add(record)

        item = self.to_item(record)
        if item is None:
            raise ValueError(f"Inserted record {record.id} is not a valid media item")

        logger.debug(f"Inserted media record {item.id} for {owner_id}")
        return item

    def delete(self, item_id: str) -> bool:
        """
        Delete a record by id.

        Returns:
            True if a row was removed
        """
        with self._session_factory() as session, session.begin():
            result = session.execute(delete(MediaRecord).where(MediaRecord.id == item_id))
            removed = result.rowcount > 0

        logger.debug(f"Deleted media record {item_id}: {removed}")
        return removed

    def get(self, item_id: str) -> Optional[MediaItem]:
        """Get a record by id"""
        with self._session_factory() as session:
            record = session.get(MediaRecord, item_id)
            if record is None:
                return None
            return self.to_item(record)

    def query(self, owner_id: Optional[str] = None, newest_first: bool = True) -> List[MediaItem]:
        """
        List records.

        Args:
            owner_id: Restrict to one owner (all owners when None)
            newest_first: Order by creation time descending

        Returns:
            Valid MediaItems; malformed rows are skipped
        """
        statement = select(MediaRecord)
        if owner_id is not None:
            statement = statement.where(MediaRecord.user_id == owner_id)
        order = MediaRecord.created_at.desc() if newest_first else MediaRecord.created_at.asc()
        statement = statement.order_by(order, MediaRecord.id)

        with self._session_factory() as session:
            records = session.scalars(statement).all()

        items = []
        for record in records:
            item = self.to_item(record)
            if item is not None:
                items.append(item)
        return items

    def count(self) -> int:
        """Total number of rows"""
        with self._session_factory() as session:
            return len(session.scalars(select(MediaRecord.id)).all())

    def dispose(self):
        """Release database connections"""
        self.engine.dispose()
