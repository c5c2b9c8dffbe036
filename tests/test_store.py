import pytest

from src.photoshare.db import create_db_engine, create_session_factory, ensure_schema
from src.photoshare.store import PhotoStore, RecordNotFound, UniqueViolation, UserStore


@pytest.fixture
def db(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'store.db'}")
    ensure_schema(engine)
    session = create_session_factory(engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def owner(db):
    return UserStore(db).create("alice", "alice@mail.com", "hash")


class TestUserStore:
    def test_get_by_email(self, db, owner):
        users = UserStore(db)
        found = users.get_by_email("alice@mail.com")
        assert found.id == owner.id
        assert found.photos is None
        assert users.get_by_email("nobody@mail.com") is None

    def test_get_by_email_with_photos(self, db, owner):
        photos = PhotoStore(db)
        first = photos.create(owner.id, "One", "", "http://x/public/one.jpg")
        second = photos.create(owner.id, "Two", "c", "http://x/public/two.jpg")

        found = UserStore(db).get_by_email("alice@mail.com", with_photos=True)
        assert [p.id for p in found.photos] == [first.id, second.id]

    def test_duplicate_email(self, db, owner):
        with pytest.raises(UniqueViolation):
            UserStore(db).create("alice2", "alice@mail.com", "hash")
        # The rollback discards the whole uncommitted unit of work.
        assert UserStore(db).get_by_email("alice@mail.com") is None

    def test_delete_unknown(self, db):
        with pytest.raises(RecordNotFound):
            UserStore(db).delete(77)


class TestPhotoStore:
    def test_get_by_id_without_owner(self, db, owner):
        photos = PhotoStore(db)
        photo = photos.create(owner.id, "One", None, "http://x/public/one.jpg")
        loaded = photos.get_by_id(photo.id)
        assert loaded.caption == ""
        assert loaded.owner is None

    def test_get_by_id_with_owner(self, db, owner):
        photos = PhotoStore(db)
        photo = photos.create(owner.id, "One", "", "http://x/public/one.jpg")
        loaded = photos.get_by_id(photo.id, with_owner=True)
        assert loaded.owner.id == owner.id
        assert loaded.owner.email == "alice@mail.com"

    def test_unknown_photo(self, db):
        with pytest.raises(RecordNotFound) as info:
            PhotoStore(db).get_by_id(5)
        assert info.value.kind == "photo"
