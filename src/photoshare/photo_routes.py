import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.photoshare.db import get_db
from src.photoshare.deps import Services, get_photo_store, get_services
from src.photoshare.errors import BadRequest, InternalFault, ValidationFailure
from src.photoshare.guards import OwnedResource, ResourceKind, get_current_user, require_owner
from src.photoshare.schemas import PhotoDetailView, PhotoListView, PhotoView, SuccessResponse
from src.photoshare.storage import PhotoStorage, extension_allowed, upload_size
from src.photoshare.store import PhotoRecord, PhotoStore, RecordNotFound, UserRecord
from src.photoshare.validation import PHOTO_RULES, validate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/photos", tags=["photos"])

require_photo_owner = require_owner(ResourceKind.PHOTO)

OWNER_MISSING = "Can't populate owner of the photo, user with related userId is not found"


# PUBLIC_INTERFACE
def checked_upload(
    photo: Optional[UploadFile] = File(None, description="Image file"),
    services: Services = Depends(get_services),
) -> Optional[UploadFile]:
    """Return the uploaded `photo` file, if any, after extension and size checks."""
    if photo is None or not photo.filename:
        return None

    config = services.config
    if not extension_allowed(photo.filename, config.allowed_extensions):
        ext = photo.filename.rsplit(".", 1)[-1] if "." in photo.filename else ""
        raise ValidationFailure({"photo": f"photo with .{ext} extension is not allowed"})

    if upload_size(photo) > config.max_upload_kb * 1024:
        raise ValidationFailure(
            {"photo": f"photo file is to large, the photo is larger than {config.max_upload_kb}KB."}
        )
    return photo


def _owner_of(photos: PhotoStore, photo: PhotoRecord) -> UserRecord:
    try:
        return photos.get_owner(photo.user_id)
    except RecordNotFound:
        raise BadRequest("message", OWNER_MISSING)


def _save_file(storage: PhotoStorage, upload: UploadFile, filename: str) -> None:
    try:
        storage.save_upload(upload, filename)
    except (OSError, ValueError) as exc:
        raise InternalFault(str(exc))


def _remove_file(storage: PhotoStorage, photo_url: str) -> None:
    try:
        storage.delete_for_url(photo_url)
    except (OSError, ValueError) as exc:
        raise InternalFault(str(exc))


def _commit_or_discard(db: Session, storage: PhotoStorage, saved_filename: Optional[str]) -> None:
    # A file saved for this request must not outlive a failed commit.
    try:
        db.commit()
    except SQLAlchemyError:
        if saved_filename:
            storage.delete(saved_filename)
        raise


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=SuccessResponse[PhotoListView],
    summary="List photos",
    description="Public listing of every photo, newest first.",
)
def list_photos(photos: PhotoStore = Depends(get_photo_store)) -> SuccessResponse[PhotoListView]:
    items = [PhotoView.from_record(p) for p in photos.list_all()]
    return SuccessResponse(data=PhotoListView(photos=items))


# PUBLIC_INTERFACE
@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[PhotoDetailView],
    summary="Upload photo",
    description="Create a photo owned by the caller from a multipart form (title, caption, photo).",
)
def create_photo(
    request: Request,
    caller: UserRecord = Depends(get_current_user),
    title: Optional[str] = Form(None),
    caption: Optional[str] = Form(None),
    upload: Optional[UploadFile] = Depends(checked_upload),
    services: Services = Depends(get_services),
    photos: PhotoStore = Depends(get_photo_store),
    db: Session = Depends(get_db),
) -> SuccessResponse[PhotoDetailView]:
    storage = services.storage

    filename: Optional[str] = None
    photo_url = ""
    if upload is not None:
        filename = storage.unique_filename(caller.id, upload.filename)
        photo_url = storage.public_url(filename, str(request.base_url))

    violations = validate({"title": title, "photoUrl": photo_url}, PHOTO_RULES)
    if violations:
        raise ValidationFailure(violations)

    photo = photos.create(user_id=caller.id, title=title, caption=caption or "", photo_url=photo_url)
    owner = _owner_of(photos, photo)
    _save_file(storage, upload, filename)
    _commit_or_discard(db, storage, filename)

    logger.info("User %s created photo %s", caller.id, photo.id)
    return SuccessResponse(data=PhotoDetailView.from_records(photo, owner))


# PUBLIC_INTERFACE
@router.put(
    "/{photoId}",
    response_model=SuccessResponse[PhotoDetailView],
    summary="Update photo",
    description="Update title/caption and optionally replace the image file. Owner only.",
)
def update_photo(
    request: Request,
    owned: OwnedResource = Depends(require_photo_owner),
    title: Optional[str] = Form(None),
    caption: Optional[str] = Form(None),
    upload: Optional[UploadFile] = Depends(checked_upload),
    services: Services = Depends(get_services),
    photos: PhotoStore = Depends(get_photo_store),
    db: Session = Depends(get_db),
) -> SuccessResponse[PhotoDetailView]:
    storage = services.storage
    current: PhotoRecord = owned.target
    old_url = current.photo_url

    filename: Optional[str] = None
    photo_url = old_url
    if upload is not None:
        filename = storage.unique_filename(owned.caller.id, upload.filename)
        photo_url = storage.public_url(filename, str(request.base_url))

    violations = validate({"title": title, "photoUrl": photo_url}, PHOTO_RULES)
    if violations:
        raise ValidationFailure(violations)

    updated = photos.update(current.id, title=title, caption=caption or "", photo_url=photo_url)
    owner = _owner_of(photos, updated)
    if upload is not None:
        _save_file(storage, upload, filename)
    _commit_or_discard(db, storage, filename)

    if upload is not None:
        _remove_file(storage, old_url)

    logger.info("User %s updated photo %s", owned.caller.id, updated.id)
    return SuccessResponse(data=PhotoDetailView.from_records(updated, owner))


# PUBLIC_INTERFACE
@router.delete(
    "/{photoId}",
    response_model=SuccessResponse[PhotoDetailView],
    summary="Delete photo",
    description="Delete a photo and its image file. Owner only. Returns the deleted photo.",
)
def delete_photo(
    owned: OwnedResource = Depends(require_photo_owner),
    services: Services = Depends(get_services),
    photos: PhotoStore = Depends(get_photo_store),
    db: Session = Depends(get_db),
) -> SuccessResponse[PhotoDetailView]:
    photo: PhotoRecord = owned.target
    owner = _owner_of(photos, photo)

    photos.delete(photo.id)
    db.commit()
    _remove_file(services.storage, photo.photo_url)

    logger.info("User %s deleted photo %s", owned.caller.id, photo.id)
    return SuccessResponse(data=PhotoDetailView.from_records(photo, owner))
