import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.auth.dependencies import AuthorizedSession, require_student
from portal.core import config
from portal.core.platform import PortalPlatform, get_platform
from portal.database import get_db
from portal.models.document import Document
from portal.models.profile import Profile
from portal.schemas import DocumentResponse
from portal.services.uploads import (
    SelectedFile,
    UploadError,
    UploadPipeline,
    UploadRecordError,
    UploadValidationError,
    validate_upload,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=['documents'])

DATABASE_UNAVAILABLE = 'Database unavailable. Verify DATABASE_URL and Postgres credentials.'


class DashboardResponse(BaseModel):
    profile_complete: bool
    documents: list[DocumentResponse]


class UploadResponse(BaseModel):
    message: str
    label: str | None = None
    document: DocumentResponse
    documents: list[DocumentResponse]


def list_documents_for(db: Session, user_id: str) -> list[Document]:
    return (
        db.query(Document)
        .filter(Document.user_id == user_id)
        .order_by(Document.created_at.desc())
        .all()
    )


def is_profile_complete(profile: Profile | None) -> bool:
    return bool(profile and profile.school and profile.class_name)


@router.get('', response_model=DashboardResponse)
def list_my_documents(
    session: AuthorizedSession = Depends(require_student),
    db: Session = Depends(get_db),
):
    try:
        profile = db.query(Profile).filter(Profile.id == session.user_id).first()
        documents = list_documents_for(db, session.user_id)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc

    return DashboardResponse(
        profile_complete=is_profile_complete(profile),
        documents=[DocumentResponse.model_validate(document) for document in documents],
    )


@router.post('', response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    label: str | None = Form(default=None),
    session: AuthorizedSession = Depends(require_student),
    db: Session = Depends(get_db),
    platform: PortalPlatform = Depends(get_platform),
):
    # One byte past the limit is enough for the size check to see an oversize file.
    data = await file.read(config.MAX_UPLOAD_BYTES + 1)
    selected = SelectedFile(name=file.filename or '', content_type=file.content_type, data=data)

    try:
        validate_upload(selected)
    except UploadValidationError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

    refreshed: list[Document] = []

    def refresh_documents(document: Document) -> None:
        try:
            refreshed.extend(list_documents_for(db, session.user_id))
        except SQLAlchemyError:
            logger.exception('Could not reload documents after storing %s', document.file_path)
            refreshed.append(document)

    pipeline = UploadPipeline(
        bucket=platform.bucket(config.UPLOADS_BUCKET, session.access_token),
        db=db,
        on_progress=lambda value: logger.debug('Upload of %s at %d%%', selected.name, value),
        on_complete=refresh_documents,
    )

    try:
        document = pipeline.run(session.user_id, selected)
    except UploadRecordError as exc:
        logger.exception('Could not record upload for user %s', session.user_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc
    except UploadError as exc:
        logger.exception('Upload failed for user %s', session.user_id)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f'Erro: {exc.message}',
        ) from exc

    return UploadResponse(
        message='Arquivo enviado com sucesso!',
        label=label,
        document=DocumentResponse.model_validate(document),
        documents=[DocumentResponse.model_validate(item) for item in refreshed],
    )
