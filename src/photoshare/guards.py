"""
Request guards: who is calling, and may they touch this resource.

`get_current_user` resolves the bearer token to a user. `require_owner`
builds, per route, a dependency that runs after it and checks that the
caller owns the user or photo named in the path.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from fastapi import Depends, Header, Request

from src.photoshare.auth import TokenError
from src.photoshare.deps import Services, get_photo_store, get_services, get_user_store
from src.photoshare.errors import (
    AuthFailure,
    BadRequest,
    Forbidden,
    InternalFault,
    NotFound,
    Unauthenticated,
)
from src.photoshare.store import PhotoRecord, PhotoStore, RecordNotFound, UserRecord, UserStore

logger = logging.getLogger(__name__)

MAX_RESOURCE_ID = 2**31 - 1


class ResourceKind(str, enum.Enum):
    USER = "user"
    PHOTO = "photo"

    @property
    def path_param(self) -> str:
        return f"{self.value}Id"


@dataclass(frozen=True)
class OwnedResource:
    """The authenticated caller together with the resource it was cleared to mutate."""

    caller: UserRecord
    target: Union[UserRecord, PhotoRecord]


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise Unauthenticated(AuthFailure.MISSING)
    parts = authorization.split(" ")
    if len(parts) != 2 or not all(parts) or parts[0].lower() != "bearer":
        raise Unauthenticated(AuthFailure.MALFORMED)
    return parts[1]


# PUBLIC_INTERFACE
def get_current_user(
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services),
    users: UserStore = Depends(get_user_store),
) -> UserRecord:
    """
    FastAPI dependency that returns the authenticated user.

    Expects `Authorization: Bearer <token>`.
    """
    token = _bearer_token(authorization)
    try:
        claims = services.tokens.verify(token)
    except TokenError as exc:
        logger.info("Rejected token: %s", exc)
        raise Unauthenticated(AuthFailure.INVALID_TOKEN)
    except RuntimeError as exc:
        raise InternalFault(str(exc))

    try:
        return users.get_by_id(claims.subject_id)
    except RecordNotFound:
        logger.info("Token subject %s has no user", claims.subject_id)
        raise Unauthenticated(AuthFailure.SUBJECT_NOT_FOUND)


def _parse_resource_id(raw: Optional[str], kind: ResourceKind) -> int:
    value = (raw or "").strip()
    if not value.isdigit() or not value.isascii():
        raise BadRequest(f"{kind.value}_id", f"Invalid {kind.value} ID")
    resource_id = int(value)
    if resource_id <= 0 or resource_id > MAX_RESOURCE_ID:
        raise BadRequest(f"{kind.value}_id", f"Invalid {kind.value} ID")
    return resource_id


# PUBLIC_INTERFACE
def require_owner(kind: ResourceKind) -> Callable[..., OwnedResource]:
    """
    Build the ownership dependency for routes addressing `kind` by path ID.

    The path parameter is `userId` or `photoId`. Outcomes: malformed ID is a
    BadRequest, unknown ID a NotFound, someone else's resource a Forbidden.
    """

    def dependency(
        request: Request,
        caller: UserRecord = Depends(get_current_user),
        users: UserStore = Depends(get_user_store),
        photos: PhotoStore = Depends(get_photo_store),
    ) -> OwnedResource:
        resource_id = _parse_resource_id(request.path_params.get(kind.path_param), kind)

        target: Union[UserRecord, PhotoRecord]
        try:
            if kind is ResourceKind.USER:
                target = users.get_by_id(resource_id)
                owner_id = target.id
            else:
                target = photos.get_by_id(resource_id)
                owner_id = target.user_id
        except RecordNotFound:
            raise NotFound(kind.value)

        if owner_id != caller.id:
            logger.warning(
                "User %s denied access to %s %s owned by %s", caller.id, kind.value, resource_id, owner_id
            )
            raise Forbidden("not_owner")
        return OwnedResource(caller=caller, target=target)

    dependency.__name__ = f"require_{kind.value}_owner"
    return dependency
