"""Folder API endpoints. Every route requires a valid access token."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import authorize_jwt, get_claims
from app.schemas.auth import MessageResponse
from app.schemas.folder import (
    FolderCreateRequest,
    FolderCreateResponse,
    FolderListResponse,
    FolderResponse,
    FolderUnlockRequest,
)
from app.services.folder import FolderService, get_folder_service
from app.services.jwt import AccessClaims

router = APIRouter(tags=["Folders"], dependencies=[Depends(authorize_jwt)])


@router.get("/user", response_model=FolderListResponse)
def list_folders(
    claims: AccessClaims = Depends(get_claims),
    db: Session = Depends(get_db),
    service: FolderService = Depends(get_folder_service),
) -> FolderListResponse:
    """List the caller's folders."""
    folders = service.list_folders(db, claims.user_id)
    return FolderListResponse(folders=[FolderResponse.model_validate(f) for f in folders])


@router.post("/new_folder", response_model=FolderCreateResponse)
def create_folder(
    body: FolderCreateRequest,
    claims: AccessClaims = Depends(get_claims),
    db: Session = Depends(get_db),
    service: FolderService = Depends(get_folder_service),
) -> FolderCreateResponse:
    """Create a folder, locked when a password is given."""
    folder = service.create_folder(db, claims.user_id, body.folder_name, body.password or None)
    return FolderCreateResponse(id=folder.id)


@router.post("/user/{folder_id}/unlock", response_model=MessageResponse)
def unlock_folder(
    folder_id: int,
    body: FolderUnlockRequest,
    claims: AccessClaims = Depends(get_claims),
    db: Session = Depends(get_db),
    service: FolderService = Depends(get_folder_service),
) -> MessageResponse:
    """Check the password of a locked folder."""
    service.unlock_folder(db, folder_id, claims.user_id, body.password)
    return MessageResponse(message="The password is correct")


@router.delete("/user/{folder_id}/remove_folder", response_model=MessageResponse)
def remove_folder(
    folder_id: int,
    claims: AccessClaims = Depends(get_claims),
    db: Session = Depends(get_db),
    service: FolderService = Depends(get_folder_service),
) -> MessageResponse:
    """Delete a folder and its contents."""
    service.delete_folder(db, folder_id, claims.user_id)
    return MessageResponse(message="Folder deleted")
