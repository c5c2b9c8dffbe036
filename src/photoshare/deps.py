"""Shared dependencies: the per-application service handles and per-request stores."""

from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from src.photoshare.auth import Hasher, TokenService
from src.photoshare.config import AppConfig
from src.photoshare.db import get_db
from src.photoshare.storage import PhotoStorage
from src.photoshare.store import PhotoStore, UserStore


@dataclass(frozen=True)
class Services:
    """Handles built once by the app factory and injected into every request."""

    config: AppConfig
    hasher: Hasher
    tokens: TokenService
    storage: PhotoStorage


# PUBLIC_INTERFACE
def get_services(request: Request) -> Services:
    return request.app.state.services


# PUBLIC_INTERFACE
def get_user_store(db: Session = Depends(get_db)) -> UserStore:
    return UserStore(db)


# PUBLIC_INTERFACE
def get_photo_store(db: Session = Depends(get_db)) -> PhotoStore:
    return PhotoStore(db)
