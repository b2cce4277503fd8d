import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from portal.auth.dependencies import TEACHER, AuthorizedSession, require_teacher
from portal.core import config
from portal.core.platform import PlatformError, PortalPlatform, get_platform

logger = logging.getLogger(__name__)

router = APIRouter(tags=['invite'])

MISSING_FIELDS_MESSAGE = 'Email e Nome são obrigatórios'
INTERNAL_ERROR_MESSAGE = 'Erro interno no servidor'
INVITE_SENT_MESSAGE = 'Convite enviado com sucesso!'


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ''


@router.post('/invite')
async def invite_teacher(
    request: Request,
    session: AuthorizedSession = Depends(require_teacher),
    platform: PortalPlatform = Depends(get_platform),
):
    try:
        data = await request.json()
    except ValueError:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={'error': MISSING_FIELDS_MESSAGE})

    if not isinstance(data, dict):
        data = {}
    email = _clean(data.get('email'))
    full_name = _clean(data.get('fullName'))
    if not email or not full_name:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={'error': MISSING_FIELDS_MESSAGE})

    try:
        platform.invite_user(
            email,
            metadata={'full_name': full_name, 'role': TEACHER},
            redirect_to=config.INVITE_REDIRECT_URL,
        )
    except PlatformError as exc:
        logger.error('Invitation to %s failed: %s', email, exc.message)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={'error': exc.message})
    except Exception:
        logger.exception('Unexpected failure inviting %s', email)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={'error': INTERNAL_ERROR_MESSAGE},
        )

    logger.info('Teacher %s invited %s', session.user_id, email)
    return JSONResponse(content={'message': INVITE_SENT_MESSAGE})
