import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.auth.dependencies import AuthorizedSession, require_account
from portal.core import config
from portal.core.platform import PlatformError, PortalPlatform, get_platform
from portal.database import get_db
from portal.models.profile import Profile
from portal.schemas import ProfileResponse, ProfileUpdateRequest
from portal.services.uploads import sanitize_file_name

logger = logging.getLogger(__name__)

router = APIRouter(tags=['profile'])

DATABASE_UNAVAILABLE = 'Database unavailable. Verify DATABASE_URL and Postgres credentials.'
DEFAULT_AVATAR_EXTENSION = 'png'


def get_own_profile(db: Session, user_id: str) -> Profile:
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Perfil não encontrado.')
    return profile


def avatar_path(user_id: str, file_name: str) -> str:
    extension = file_name.rsplit('.', 1)[-1] if '.' in file_name else DEFAULT_AVATAR_EXTENSION
    extension = sanitize_file_name(extension).lower() or DEFAULT_AVATAR_EXTENSION
    return f'{user_id}/avatar.{extension}'


@router.get('', response_model=ProfileResponse)
def read_profile(
    session: AuthorizedSession = Depends(require_account),
    db: Session = Depends(get_db),
):
    try:
        return get_own_profile(db, session.user_id)
    except SQLAlchemyError as exc:
        logger.exception('Could not load profile %s', session.user_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.put('', response_model=ProfileResponse)
def update_profile(
    data: ProfileUpdateRequest,
    session: AuthorizedSession = Depends(require_account),
    db: Session = Depends(get_db),
):
    try:
        profile = get_own_profile(db, session.user_id)
        for field, value in data.model_dump().items():
            setattr(profile, field, value)
        profile.last_updated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(profile)
        return profile
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Could not save profile %s', session.user_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.post('/avatar', response_model=ProfileResponse)
async def upload_avatar(
    file: UploadFile = File(...),
    session: AuthorizedSession = Depends(require_account),
    db: Session = Depends(get_db),
    platform: PortalPlatform = Depends(get_platform),
):
    if not (file.content_type or '').startswith('image/'):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Envie uma imagem.')

    data = await file.read(config.MAX_UPLOAD_BYTES + 1)
    if len(data) > config.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail='Arquivo muito grande. Máximo 10MB.',
        )

    path = avatar_path(session.user_id, file.filename or '')
    bucket = platform.bucket(config.AVATARS_BUCKET, session.access_token)
    try:
        bucket.upload(path, data, file.content_type, upsert=True)
    except PlatformError as exc:
        logger.exception('Avatar upload failed for user %s', session.user_id)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f'Erro ao enviar foto: {exc.message}',
        ) from exc

    try:
        profile = get_own_profile(db, session.user_id)
        profile.avatar_url = bucket.get_public_url(path)
        db.commit()
        db.refresh(profile)
        return profile
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc
