"""Document upload pipeline.

A selected file goes through, in order: validation, file name sanitization,
storage upload, public URL resolution, metadata insert and the completion
callback. Each step only runs when the previous one succeeded. Validation
happens before any call to storage or to the database.
"""

import logging
import re
import time
import unicodedata
from dataclasses import dataclass
from typing import Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.core import config
from portal.core.platform import describe_error
from portal.models.document import Document

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)

INVALID_TYPE_MESSAGE = "Formato inválido. Apenas PDF ou Word (.doc, .docx)."
TOO_LARGE_MESSAGE = "Arquivo muito grande. Máximo 10MB."
MISSING_FILE_MESSAGE = "Selecione um arquivo."
UNKNOWN_UPLOAD_ERROR = "Ocorreu um erro desconhecido no upload."
RECORD_FAILED_MESSAGE = "Não foi possível registrar o arquivo."

PROGRESS_SELECTED = 10
PROGRESS_STORED = 60
PROGRESS_RECORDED = 100

_UNSAFE_CHARACTERS = re.compile(r"[^A-Za-z0-9.-]")
_COMBINING_DIACRITICS = re.compile("[\u0300-\u036f]")


class UploadValidationError(ValueError):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class UploadError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UploadRecordError(UploadError):
    """The object was stored but its metadata row could not be written."""


class Bucket(Protocol):
    name: str

    def upload(self, path: str, data: bytes, content_type: str, upsert: bool = False) -> None: ...

    def get_public_url(self, path: str) -> str: ...

    def remove(self, path: str) -> None: ...


@dataclass(frozen=True)
class SelectedFile:
    name: str
    content_type: str | None
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def validate_upload(selected: SelectedFile, max_bytes: int = config.MAX_UPLOAD_BYTES) -> None:
    if not selected.name:
        raise UploadValidationError(MISSING_FILE_MESSAGE)
    if selected.content_type not in ALLOWED_CONTENT_TYPES:
        raise UploadValidationError(INVALID_TYPE_MESSAGE)
    if selected.size > max_bytes:
        raise UploadValidationError(TOO_LARGE_MESSAGE, status_code=413)


def sanitize_file_name(name: str) -> str:
    without_marks = _COMBINING_DIACRITICS.sub("", unicodedata.normalize("NFD", name))
    return _UNSAFE_CHARACTERS.sub("_", without_marks)


def build_storage_path(account_id: str, safe_name: str, timestamp_ms: int) -> str:
    return f"{account_id}/{timestamp_ms}_{safe_name}"


def current_millis() -> int:
    return time.time_ns() // 1_000_000


def _ignore(_value) -> None:
    return None


class UploadPipeline:
    def __init__(
        self,
        bucket: Bucket,
        db: Session,
        clock: Callable[[], int] = current_millis,
        on_progress: Callable[[int], None] = _ignore,
        on_complete: Callable[[Document], None] = _ignore,
    ):
        self.bucket = bucket
        self.db = db
        self.clock = clock
        self.on_progress = on_progress
        self.on_complete = on_complete

    def run(self, account_id: str, selected: SelectedFile) -> Document:
        validate_upload(selected)
        self.on_progress(PROGRESS_SELECTED)

        file_path = build_storage_path(account_id, sanitize_file_name(selected.name), self.clock())

        try:
            self.bucket.upload(file_path, selected.data, selected.content_type, upsert=False)
        except Exception as exc:
            raise UploadError(describe_error(exc, UNKNOWN_UPLOAD_ERROR)) from exc
        self.on_progress(PROGRESS_STORED)

        try:
            file_url = self.bucket.get_public_url(file_path)
        except Exception as exc:
            self._discard(file_path)
            raise UploadError(describe_error(exc, UNKNOWN_UPLOAD_ERROR)) from exc

        try:
            document = self._record(account_id, selected, file_path, file_url)
        except SQLAlchemyError as exc:
            self._discard(file_path)
            raise UploadRecordError(RECORD_FAILED_MESSAGE) from exc
        self.on_progress(PROGRESS_RECORDED)

        logger.info("Stored %s (%d bytes) for user %s", file_path, selected.size, account_id)
        self.on_complete(document)
        return document

    def _record(self, account_id: str, selected: SelectedFile, file_path: str, file_url: str) -> Document:
        document = Document(
            user_id=account_id,
            file_name=selected.name,
            file_path=file_path,
            file_url=file_url,
            content_type=selected.content_type,
            size_bytes=selected.size,
        )
        try:
            self.db.add(document)
            self.db.commit()
            self.db.refresh(document)
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return document

    def _discard(self, file_path: str) -> None:
        logger.warning("Removing %s from bucket %s after failed insert", file_path, self.bucket.name)
        try:
            self.bucket.remove(file_path)
        except Exception:
            logger.exception("Could not remove orphaned object %s", file_path)
