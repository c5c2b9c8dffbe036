import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from src.photoshare.db import get_db
from src.photoshare.deps import Services, get_services, get_user_store
from src.photoshare.errors import BadRequest, Conflict, CredentialMismatch, InternalFault, ValidationFailure
from src.photoshare.guards import OwnedResource, ResourceKind, require_owner
from src.photoshare.schemas import (
    AuthTokenView,
    LoginRequest,
    RegisterRequest,
    SuccessResponse,
    UserDetailView,
    UserUpdateRequest,
)
from src.photoshare.store import RecordNotFound, UniqueViolation, UserRecord, UserStore
from src.photoshare.validation import LOGIN_RULES, REGISTER_RULES, USER_UPDATE_RULES, validate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

require_user_owner = require_owner(ResourceKind.USER)

EMAIL_TAKEN = "Email is already taken"
LOGIN_MISMATCH = "Email and password provided doesn't match"


def _issue_token(services: Services, user: UserRecord) -> str:
    try:
        return services.tokens.issue(user.id)
    except RuntimeError as exc:
        raise InternalFault(str(exc))


# PUBLIC_INTERFACE
@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[AuthTokenView],
    summary="Register",
    description="Create an account and return an access token.",
)
def register(
    payload: RegisterRequest,
    services: Services = Depends(get_services),
    users: UserStore = Depends(get_user_store),
    db: Session = Depends(get_db),
) -> SuccessResponse[AuthTokenView]:
    violations = validate(payload.model_dump(), REGISTER_RULES)
    if (payload.password or "") != (payload.confirmPassword or ""):
        violations["confirmPassword"] = "password must be matched"
    if violations:
        raise ValidationFailure(violations)

    if users.get_by_email(payload.email) is not None:
        raise Conflict("email", EMAIL_TAKEN)

    try:
        user = users.create(
            username=payload.username,
            email=payload.email,
            password_hash=services.hasher.hash(payload.password),
        )
    except UniqueViolation:
        raise Conflict("email", EMAIL_TAKEN)

    token = _issue_token(services, user)
    db.commit()

    logger.info("Registered user %s", user.id)
    return SuccessResponse(data=AuthTokenView(accessToken=token))


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=SuccessResponse[AuthTokenView],
    summary="Login",
    description="Exchange email/password for an access token.",
)
def login(
    payload: LoginRequest,
    services: Services = Depends(get_services),
    users: UserStore = Depends(get_user_store),
) -> SuccessResponse[AuthTokenView]:
    violations = validate(payload.model_dump(), LOGIN_RULES)
    if violations:
        raise ValidationFailure(violations)

    # Unknown email and wrong password must look the same to the caller.
    user = users.get_by_email(payload.email)
    if user is None or not services.hasher.matches(user.password_hash, payload.password):
        raise CredentialMismatch("message", LOGIN_MISMATCH)

    return SuccessResponse(data=AuthTokenView(accessToken=_issue_token(services, user)))


# PUBLIC_INTERFACE
@router.put(
    "/{userId}",
    response_model=SuccessResponse[UserDetailView],
    summary="Update account",
    description="Change username, email and password. Requires the current password. Owner only.",
)
def update_user(
    payload: UserUpdateRequest,
    owned: OwnedResource = Depends(require_user_owner),
    services: Services = Depends(get_services),
    users: UserStore = Depends(get_user_store),
    db: Session = Depends(get_db),
) -> SuccessResponse[UserDetailView]:
    user: UserRecord = owned.target

    violations = validate(payload.model_dump(), USER_UPDATE_RULES)
    if (payload.newPassword or "") != (payload.confirmPassword or ""):
        violations["confirmPassword"] = "password must be matched with the new one"
    if violations:
        raise ValidationFailure(violations)

    if not services.hasher.matches(user.password_hash, payload.oldPassword):
        raise CredentialMismatch("oldPassword", "old password doesn't match the current password.")

    if payload.email != user.email:
        holder = users.get_by_email(payload.email)
        if holder is not None and holder.id != user.id:
            raise Conflict("email", EMAIL_TAKEN)

    try:
        users.update(
            user.id,
            username=payload.username,
            email=payload.email,
            password_hash=services.hasher.hash(payload.newPassword),
        )
    except UniqueViolation:
        raise Conflict("email", EMAIL_TAKEN)
    db.commit()

    try:
        populated = users.get_by_id(user.id, with_photos=True)
    except RecordNotFound:
        raise BadRequest("message", "User with related id isn't found")

    logger.info("Updated user %s", user.id)
    return SuccessResponse(data=UserDetailView.from_record(populated))


# PUBLIC_INTERFACE
@router.delete(
    "/{userId}",
    response_model=SuccessResponse[UserDetailView],
    summary="Delete account",
    description="Delete the account, its photos and their image files. Owner only.",
)
def delete_user(
    owned: OwnedResource = Depends(require_user_owner),
    services: Services = Depends(get_services),
    users: UserStore = Depends(get_user_store),
    db: Session = Depends(get_db),
) -> SuccessResponse[UserDetailView]:
    try:
        populated = users.get_by_id(owned.target.id, with_photos=True)
    except RecordNotFound:
        raise BadRequest("message", "User with related id isn't found")

    users.delete(populated.id)
    db.commit()

    failures: List[str] = []
    for photo in populated.photos or []:
        try:
            services.storage.delete_for_url(photo.photo_url)
        except (OSError, ValueError) as exc:
            logger.error("Could not remove file of photo %s: %s", photo.id, exc)
            failures.append(str(exc))
    if failures:
        raise InternalFault("; ".join(failures))

    logger.info("Deleted user %s with %d photos", populated.id, len(populated.photos or []))
    return SuccessResponse(data=UserDetailView.from_record(populated))
