"""Folder service for owner-scoped folder storage and locking."""

import logging
import shutil
from pathlib import Path

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.errors import (
    FolderAlreadyExistsError,
    FolderNotFoundError,
    InvalidFolderNameError,
    InvalidFolderPasswordError,
    StorageError,
)
from app.models.folder import Folder
from app.services.hashing import Hasher, get_hasher

logger = logging.getLogger("shelfdrive")

FORBIDDEN_NAME_PARTS = ("/", "\\", "..")
RESERVED_NAMES = (".", "..")


class FolderService:
    """Handles folder creation, listing, unlocking and removal."""

    def __init__(self, hasher: Hasher, storage_dir: str) -> None:
        self.hasher = hasher
        self.storage_dir = Path(storage_dir)

    def validate_name(self, name: str) -> str:
        """Return the cleaned folder name or raise InvalidFolderNameError."""
        name = name.strip()
        if not name:
            raise InvalidFolderNameError("Folder name cannot be empty")
        if name in RESERVED_NAMES:
            raise InvalidFolderNameError(f"Folder name '{name}' is reserved")
        if any(part in name for part in FORBIDDEN_NAME_PARTS):
            raise InvalidFolderNameError(f"Folder name '{name}' contains forbidden characters")
        if any(not ch.isprintable() for ch in name):
            raise InvalidFolderNameError("Folder name contains control characters")
        return name

    def folder_path(self, owner_id: int, name: str) -> Path:
        """Location of a folder on disk."""
        return self.storage_dir / str(owner_id) / name

    def owned_path(self, owner_id: int, name: str) -> Path:
        """Folder location, checked to be a direct child of the owner's directory."""
        path = self.folder_path(owner_id, name)
        owner_dir = (self.storage_dir / str(owner_id)).resolve()
        if path.resolve().parent != owner_dir:
            logger.error("Folder path %s escapes the storage directory of user %d", path, owner_id)
            raise InvalidFolderNameError(f"Folder name '{name}' is not valid")
        return path

    def list_folders(self, db: Session, owner_id: int) -> list[Folder]:
        """Get all folders owned by a user, oldest first."""
        return db.query(Folder).filter(Folder.owner_id == owner_id).order_by(Folder.id).all()

    def get_folder(self, db: Session, folder_id: int, owner_id: int) -> Folder:
        """Get a folder by ID, scoped to its owner."""
        folder = db.query(Folder).filter(Folder.id == folder_id, Folder.owner_id == owner_id).first()
        if not folder:
            raise FolderNotFoundError()
        return folder

    def create_folder(self, db: Session, owner_id: int, name: str, password: str | None = None) -> Folder:
        """Create a folder. A non-empty password locks it."""
        name = self.validate_name(name)
        if db.query(Folder).filter(Folder.owner_id == owner_id, Folder.name == name).first():
            raise FolderAlreadyExistsError(f"The folder '{name}' already exists")

        path = self.owned_path(owner_id, name)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as e:
            logger.error("Error creating folder directory %s: %s", path, e)
            raise StorageError() from e

        folder = Folder(
            owner_id=owner_id,
            name=name,
            password_hash=self.hasher.hash(password) if password else None,
            is_locked=bool(password),
        )
        db.add(folder)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise FolderAlreadyExistsError(f"The folder '{name}' already exists") from None
        db.refresh(folder)

        logger.info("User %d created folder %d", owner_id, folder.id)
        return folder

    def unlock_folder(self, db: Session, folder_id: int, owner_id: int, password: str) -> None:
        """Check the password of a locked folder. Unlocked folders always pass."""
        folder = self.get_folder(db, folder_id, owner_id)
        if not folder.is_locked:
            return
        if not folder.password_hash or not self.hasher.verify(password, folder.password_hash):
            logger.info("Wrong password for folder %d", folder_id)
            raise InvalidFolderPasswordError()

    def delete_folder(self, db: Session, folder_id: int, owner_id: int) -> None:
        """Delete a folder record and its directory tree."""
        folder = self.get_folder(db, folder_id, owner_id)
        path = self.owned_path(owner_id, folder.name)
        if path.exists():
            try:
                shutil.rmtree(path)
            except OSError as e:
                logger.error("Error removing folder directory %s: %s", path, e)
                raise StorageError() from e
        db.delete(folder)
        db.commit()
        logger.info("User %d removed folder %d", owner_id, folder_id)


_folder_service: FolderService | None = None


def get_folder_service() -> FolderService:
    """Get singleton folder service instance."""
    global _folder_service
    if _folder_service is None:
        _folder_service = FolderService(hasher=get_hasher(), storage_dir=get_settings().STORAGE_DIR)
    return _folder_service
