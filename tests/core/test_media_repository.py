"""
Tests for the media repository
"""

from datetime import datetime, timedelta, timezone

from core.media_repository import MediaRecord, MediaRepository


class TestMediaRepository:
    """Test MediaRepository functionality"""

    def _add_record(self, repository, record_id, owner_id, created_at, name="img.png"):
        with repository._session_factory() as session, session.begin():
            session.add(
                MediaRecord(
                    id=record_id,
                    user_id=owner_id,
                    url=f"http://testserver/storage/blog-images/{owner_id}/{record_id}.png",
                    name=name,
                    created_at=created_at,
                )
            )

    def test_insert_and_get(self, repository):
        item = repository.insert("owner-1", "http://example.com/a.png", "a.png")

        assert item.id
        assert item.name == "a.png"
        assert item.created_at.tzinfo is not None
        assert repository.get(item.id) == item

    def test_get_missing(self, repository):
        assert repository.get("missing") is None

    def test_query_newest_first_and_scoped(self, repository):
        """Test ordering by creation time and owner scoping"""
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._add_record(repository, "old", "owner-1", now)
        self._add_record(repository, "new", "owner-1", now + timedelta(hours=1))
        self._add_record(repository, "other", "owner-2", now + timedelta(hours=2))

        items = repository.query("owner-1")

        assert [item.id for item in items] == ["new", "old"]
        assert len(repository.query()) == 3
        assert [i.id for i in repository.query("owner-1", newest_first=False)] == ["old", "new"]

    def test_delete(self, repository):
        item = repository.insert("owner-1", "http://example.com/a.png", "a.png")

        assert repository.delete(item.id) is True
        assert repository.delete(item.id) is False
        assert repository.count() == 0

    def test_missing_name_falls_back_to_url(self):
        """Test that rows without a name get the URL's last segment"""
        record = MediaRecord(
            id="r1",
            user_id="owner-1",
            url="http://example.com/photos/cat.jpg",
            name=None,
            created_at=datetime(2024, 1, 1),
        )

        item = MediaRepository.to_item(record)

        assert item.name == "cat.jpg"
        assert item.created_at.tzinfo == timezone.utc

    def test_malformed_row_dropped(self):
        record = MediaRecord(
            id="r1", user_id="owner-1", url="", name="x", created_at=datetime(2024, 1, 1)
        )
        assert MediaRepository.to_item(record) is None

    def test_count(self, repository):
        repository.insert("owner-1", "http://example.com/a.png", "a.png")
        repository.insert("owner-2", "http://example.com/b.png", "b.png")

        assert repository.count() == 2
