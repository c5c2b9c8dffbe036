from datetime import datetime
from typing import Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, Field

from src.photoshare.store import PhotoRecord, UserRecord

T = TypeVar("T")


class SuccessResponse(BaseModel, Generic[T]):
    status: Literal["success"] = Field("success", description="JSend status")
    data: T = Field(..., description="Response payload")


class HealthResponse(BaseModel):
    message: str = Field(..., description="Health status message")


# Request bodies. Fields are optional here so that every rule violation is
# reported by the field validator instead of the framework.


class RegisterRequest(BaseModel):
    username: Optional[str] = Field(None, description="Display username")
    email: Optional[str] = Field(None, description="User email address")
    password: Optional[str] = Field(None, description="User password (min 6 chars)")
    confirmPassword: Optional[str] = Field(None, description="Must equal password")


class LoginRequest(BaseModel):
    email: Optional[str] = Field(None, description="User email address")
    password: Optional[str] = Field(None, description="User password")


class UserUpdateRequest(BaseModel):
    username: Optional[str] = Field(None, description="New username")
    email: Optional[str] = Field(None, description="New email address")
    oldPassword: Optional[str] = Field(None, description="Current password")
    newPassword: Optional[str] = Field(None, description="New password (min 6 chars)")
    confirmPassword: Optional[str] = Field(None, description="Must equal newPassword")


# Response views.


class AuthTokenView(BaseModel):
    accessToken: str = Field(..., description="JWT bearer token")


class UserView(BaseModel):
    id: int = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    email: str = Field(..., description="Email")
    createdAt: datetime = Field(..., description="Created timestamp")
    updatedAt: datetime = Field(..., description="Updated timestamp")

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserView":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            createdAt=user.created_at,
            updatedAt=user.updated_at,
        )


class PhotoView(BaseModel):
    id: int = Field(..., description="Photo ID")
    title: str = Field(..., description="Title")
    caption: str = Field("", description="Caption")
    photoUrl: str = Field(..., description="Public URL of the image file")
    userId: int = Field(..., description="Owner user ID")
    createdAt: datetime = Field(..., description="Created timestamp")
    updatedAt: datetime = Field(..., description="Updated timestamp")

    @classmethod
    def from_record(cls, photo: PhotoRecord) -> "PhotoView":
        return cls(
            id=photo.id,
            title=photo.title,
            caption=photo.caption,
            photoUrl=photo.photo_url,
            userId=photo.user_id,
            createdAt=photo.created_at,
            updatedAt=photo.updated_at,
        )


class PhotoDetailView(BaseModel):
    id: int = Field(..., description="Photo ID")
    title: str = Field(..., description="Title")
    caption: str = Field("", description="Caption")
    photoUrl: str = Field(..., description="Public URL of the image file")
    owner: UserView = Field(..., description="Owning user")
    createdAt: datetime = Field(..., description="Created timestamp")
    updatedAt: datetime = Field(..., description="Updated timestamp")

    @classmethod
    def from_records(cls, photo: PhotoRecord, owner: UserRecord) -> "PhotoDetailView":
        return cls(
            id=photo.id,
            title=photo.title,
            caption=photo.caption,
            photoUrl=photo.photo_url,
            owner=UserView.from_record(owner),
            createdAt=photo.created_at,
            updatedAt=photo.updated_at,
        )


class PhotoListView(BaseModel):
    photos: List[PhotoView] = Field(default_factory=list, description="Photos, newest first")


class UserDetailView(BaseModel):
    id: int = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    email: str = Field(..., description="Email")
    photos: List[PhotoView] = Field(default_factory=list, description="Photos owned by the user")
    createdAt: datetime = Field(..., description="Created timestamp")
    updatedAt: datetime = Field(..., description="Updated timestamp")

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserDetailView":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            photos=[PhotoView.from_record(p) for p in user.photos or []],
            createdAt=user.created_at,
            updatedAt=user.updated_at,
        )
