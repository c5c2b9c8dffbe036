"""
Record store for users and photos.

Thin repositories over SQLAlchemy Core statements. They never commit:
the request handler owns the unit of work and decides when to commit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.photoshare.db import photos, users, utcnow


class RecordNotFound(Exception):
    def __init__(self, kind: str, record_id: Any):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class UniqueViolation(Exception):
    """The store rejected a write because a unique value is already taken.

    The session is rolled back before this is raised.
    """


@dataclass
class PhotoRecord:
    id: int
    title: str
    caption: str
    photo_url: str
    user_id: int
    created_at: datetime
    updated_at: datetime
    owner: Optional["UserRecord"] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PhotoRecord":
        return cls(
            id=row["id"],
            title=row["title"],
            caption=row["caption"] or "",
            photo_url=row["photo_url"],
            user_id=row["user_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


@dataclass
class UserRecord:
    id: int
    username: str
    email: str
    password_hash: str
    created_at: datetime
    updated_at: datetime
    photos: Optional[List[PhotoRecord]] = field(default=None)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "UserRecord":
        return cls(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            password_hash=row["password_hash"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


class UserStore:
    def __init__(self, db: Session):
        self.db = db

    # PUBLIC_INTERFACE
    def create(self, username: str, email: str, password_hash: str) -> UserRecord:
        """Insert a user. Raises UniqueViolation when the email is already held."""
        now = utcnow()
        try:
            result = self.db.execute(
                insert(users).values(
                    username=username,
                    email=email,
                    password_hash=password_hash,
                    created_at=now,
                    updated_at=now,
                )
            )
        except IntegrityError as exc:
            self.db.rollback()
            raise UniqueViolation("email") from exc
        return self.get_by_id(result.inserted_primary_key[0])

    # PUBLIC_INTERFACE
    def get_by_id(self, user_id: int, with_photos: bool = False) -> UserRecord:
        row = self.db.execute(select(users).where(users.c.id == user_id)).mappings().first()
        if row is None:
            raise RecordNotFound("user", user_id)
        user = UserRecord.from_row(row)
        if with_photos:
            user.photos = self._photos_of(user.id)
        return user

    # PUBLIC_INTERFACE
    def get_by_email(self, email: str, with_photos: bool = False) -> Optional[UserRecord]:
        row = self.db.execute(select(users).where(users.c.email == email)).mappings().first()
        if row is None:
            return None
        user = UserRecord.from_row(row)
        if with_photos:
            user.photos = self._photos_of(user.id)
        return user

    def _photos_of(self, user_id: int) -> List[PhotoRecord]:
        rows = self.db.execute(
            select(photos)
            .where(photos.c.user_id == user_id)
            .order_by(photos.c.created_at, photos.c.id)
        ).mappings().all()
        return [PhotoRecord.from_row(r) for r in rows]

    # PUBLIC_INTERFACE
    def update(self, user_id: int, username: str, email: str, password_hash: str) -> UserRecord:
        """Update profile fields. Raises UniqueViolation when the new email is taken."""
        try:
            self.db.execute(
                update(users)
                .where(users.c.id == user_id)
                .values(
                    username=username,
                    email=email,
                    password_hash=password_hash,
                    updated_at=utcnow(),
                )
            )
        except IntegrityError as exc:
            self.db.rollback()
            raise UniqueViolation("email") from exc
        return self.get_by_id(user_id)

    # PUBLIC_INTERFACE
    def delete(self, user_id: int) -> None:
        """Delete a user; owned photo rows go with it through the foreign key cascade."""
        result = self.db.execute(delete(users).where(users.c.id == user_id))
        if result.rowcount == 0:
            raise RecordNotFound("user", user_id)


class PhotoStore:
    def __init__(self, db: Session):
        self.db = db

    # PUBLIC_INTERFACE
    def create(self, user_id: int, title: str, caption: str, photo_url: str) -> PhotoRecord:
        now = utcnow()
        result = self.db.execute(
            insert(photos).values(
                user_id=user_id,
                title=title,
                caption=caption or "",
                photo_url=photo_url,
                created_at=now,
                updated_at=now,
            )
        )
        return self.get_by_id(result.inserted_primary_key[0])

    # PUBLIC_INTERFACE
    def get_by_id(self, photo_id: int, with_owner: bool = False) -> PhotoRecord:
        row = self.db.execute(select(photos).where(photos.c.id == photo_id)).mappings().first()
        if row is None:
            raise RecordNotFound("photo", photo_id)
        photo = PhotoRecord.from_row(row)
        if with_owner:
            photo.owner = self.get_owner(photo.user_id)
        return photo

    # PUBLIC_INTERFACE
    def get_owner(self, user_id: int) -> UserRecord:
        """Load the user that owns a photo."""
        return UserStore(self.db).get_by_id(user_id)

    # PUBLIC_INTERFACE
    def list_all(self) -> List[PhotoRecord]:
        """All photos, newest first."""
        rows = self.db.execute(
            select(photos).order_by(photos.c.created_at.desc(), photos.c.id.desc())
        ).mappings().all()
        return [PhotoRecord.from_row(r) for r in rows]

    # PUBLIC_INTERFACE
    def update(self, photo_id: int, title: str, caption: str, photo_url: str) -> PhotoRecord:
        self.db.execute(
            update(photos)
            .where(photos.c.id == photo_id)
            .values(
                title=title,
                caption=caption or "",
                photo_url=photo_url,
                updated_at=utcnow(),
            )
        )
        return self.get_by_id(photo_id)

    # PUBLIC_INTERFACE
    def delete(self, photo_id: int) -> None:
        result = self.db.execute(delete(photos).where(photos.c.id == photo_id))
        if result.rowcount == 0:
            raise RecordNotFound("photo", photo_id)
