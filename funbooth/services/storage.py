"""Photo persistence: blob storage plus owner-scoped photo records.

Blobs live as files under ``photos_dir``. Blob metadata and photo records live
in a SQLAlchemy database (SQLite by default), one transaction per operation.
"""

import logging
import mimetypes
import os
import secrets
import threading
import time
import uuid
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from funbooth.config import settings
from funbooth.errors import NotFoundOrUnauthorized, PersistenceError, TransferFailed, Unauthenticated
from funbooth.models.database import Base, BlobRow, PhotoRow
from funbooth.models.photo import OverlayPayload, PhotoRecord, StoredBlob, UploadDestination

logger = logging.getLogger(__name__)


class PhotoGateway(Protocol):
    """Persistence interface consumed by the session controller and the gallery."""

    def issue_upload_destination(self, owner_id: Optional[str]) -> UploadDestination:
        """Return a one-shot upload destination for the caller."""

    def transfer(self, destination: UploadDestination, blob: bytes, content_type: str) -> str:
        """Store ``blob`` at ``destination`` and return its storage id."""

    def create_record(
            self,
            owner_id: Optional[str],
            storage_id: str,
            filename: str,
            filter: Optional[str] = None,
            frame_id: Optional[str] = None,
            overlays: Optional[Sequence[OverlayPayload]] = None,
    ) -> str:
        """Create a photo record and return its id."""

    def list_records(self, owner_id: Optional[str]) -> List[Tuple[PhotoRecord, str]]:
        """Return the caller's records with resolved URLs, newest first."""

    def delete_record(self, owner_id: Optional[str], record_id: str) -> None:
        """Delete a record and its blob."""

    def discard_blob(self, storage_id: str) -> None:
        """Remove a blob that no record references."""


class LocalPhotoGateway:
    def __init__(
            self,
            photos_dir: str = settings.photos_dir,
            database_url: str = settings.database_url,
            url_prefix: str = "/api/storage",
            upload_url_ttl: int = settings.upload_url_ttl,
    ):
        self.photos_dir = photos_dir
        self.url_prefix = url_prefix
        self.upload_url_ttl = upload_url_ttl
        self._lock = threading.Lock()
        self._destinations: Dict[str, UploadDestination] = {}
        os.makedirs(self.photos_dir, exist_ok=True)

        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self.engine = create_engine(database_url, connect_args=connect_args)
        Base.metadata.create_all(self.engine)
        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    # Upload

    def issue_upload_destination(self, owner_id: Optional[str]) -> UploadDestination:
        if not owner_id:
            raise Unauthenticated()
        token = secrets.token_urlsafe(24)
        destination = UploadDestination(
            token=token,
            url=f"{self.url_prefix}/upload/{token}",
            owner_id=owner_id,
            expires_at=time.time() + self.upload_url_ttl,
        )
        with self._lock:
            self._destinations[token] = destination
        return destination

    def destination_for(self, token: str) -> UploadDestination:
        with self._lock:
            destination = self._destinations.get(token)
        if destination is None or destination.expires_at < time.time():
            raise TransferFailed("Upload URL is invalid or has expired")
        return destination

    def transfer(self, destination: UploadDestination, blob: bytes, content_type: str) -> str:
        with self._lock:
            if self._destinations.pop(destination.token, None) is None:
                raise TransferFailed("Upload URL is invalid or has already been used")
        if destination.expires_at < time.time():
            raise TransferFailed("Upload URL has expired")
        if not blob:
            raise TransferFailed("Upload body is empty")

        storage_id = uuid.uuid4().hex
        extension = mimetypes.guess_extension(content_type or "") or ".bin"
        path = os.path.join(self.photos_dir, f"{storage_id}{extension}")
        try:
            with open(path, "wb") as f:
                f.write(blob)
            with self.session_factory.begin() as db:
                db.add(BlobRow(
                    storage_id=storage_id,
                    owner_id=destination.owner_id,
                    content_type=content_type,
                    path=path,
                    size=len(blob),
                ))
        except (OSError, SQLAlchemyError) as exc:
            if os.path.exists(path):
                os.remove(path)
            raise TransferFailed(f"Upload failed: {exc}") from exc

        logger.info("Stored blob %s (%d bytes)", storage_id, len(blob))
        return storage_id

    # Records

    def create_record(
            self,
            owner_id: Optional[str],
            storage_id: str,
            filename: str,
            filter: Optional[str] = None,
            frame_id: Optional[str] = None,
            overlays: Optional[Sequence[OverlayPayload]] = None,
    ) -> str:
        if not owner_id:
            raise Unauthenticated()
        record_id = uuid.uuid4().hex
        try:
            with self.session_factory.begin() as db:
                blob = db.get(BlobRow, storage_id)
                if blob is None or blob.owner_id != owner_id:
                    raise TransferFailed(f"Unknown storage id: {storage_id}")
                db.add(PhotoRow(
                    id=record_id,
                    owner_id=owner_id,
                    storage_id=storage_id,
                    filename=filename,
                    filter=filter,
                    frame_id=frame_id,
                    overlays=[overlay.model_dump() for overlay in overlays] if overlays is not None else None,
                    created_at=time.time(),
                ))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save photo: {exc}") from exc

        logger.info("Saved photo %s for user %s", record_id, owner_id)
        return record_id

    @staticmethod
    def _to_record(row: PhotoRow) -> PhotoRecord:
        return PhotoRecord(
            id=row.id,
            owner_id=row.owner_id,
            storage_id=row.storage_id,
            filename=row.filename,
            filter=row.filter,
            frame_id=row.frame_id,
            overlays=row.overlays,
            created_at=row.created_at,
        )

    def _owned(self, db, owner_id: str, record_id: str) -> PhotoRow:
        row = db.scalars(
            select(PhotoRow).where(PhotoRow.id == record_id, PhotoRow.owner_id == owner_id)
        ).first()
        if row is None:
            raise NotFoundOrUnauthorized()
        return row

    def get_record(self, owner_id: Optional[str], record_id: str) -> PhotoRecord:
        if not owner_id:
            raise Unauthenticated()
        with self.session_factory() as db:
            return self._to_record(self._owned(db, owner_id, record_id))

    def resolve_url(self, storage_id: str) -> str:
        return f"{self.url_prefix}/{storage_id}"

    def list_records(self, owner_id: Optional[str]) -> List[Tuple[PhotoRecord, str]]:
        if not owner_id:
            return []
        with self.session_factory() as db:
            rows = db.scalars(
                select(PhotoRow)
                .where(PhotoRow.owner_id == owner_id)
                .order_by(PhotoRow.created_at.desc(), PhotoRow.seq.desc())
            ).all()
        return [(self._to_record(row), self.resolve_url(row.storage_id)) for row in rows]

    def delete_record(self, owner_id: Optional[str], record_id: str) -> None:
        if not owner_id:
            raise Unauthenticated()
        with self.session_factory.begin() as db:
            row = self._owned(db, owner_id, record_id)
            blob = db.get(BlobRow, row.storage_id)
            db.delete(row)
            if blob is not None:
                db.delete(blob)
            db.flush()
            # Rows are only committed once the file is gone
            try:
                self._remove_blob_file(blob)
            except OSError as exc:
                raise PersistenceError(f"Failed to delete photo: {exc}") from exc
        logger.info("Deleted photo %s for user %s", record_id, owner_id)

    def discard_blob(self, storage_id: str) -> None:
        with self.session_factory.begin() as db:
            blob = db.get(BlobRow, storage_id)
            if blob is None:
                return
            referenced = db.scalars(select(PhotoRow.id).where(PhotoRow.storage_id == storage_id)).first()
            if referenced is not None:
                return
            db.delete(blob)
            db.flush()
            self._remove_blob_file(blob)
        logger.info("Discarded unreferenced blob %s", storage_id)

    def open_blob(self, storage_id: str) -> StoredBlob:
        with self.session_factory() as db:
            blob = db.get(BlobRow, storage_id)
        if blob is None or not os.path.exists(blob.path):
            raise NotFoundOrUnauthorized("Photo not found")
        return StoredBlob.model_validate(blob, from_attributes=True)

    @staticmethod
    def _remove_blob_file(blob: Optional[BlobRow]) -> None:
        if blob is not None and os.path.exists(blob.path):
            os.remove(blob.path)


photo_gateway = LocalPhotoGateway()
