import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager

from portal.auth.dependencies import STUDENT, AuthorizedSession, require_teacher
from portal.database import get_db
from portal.models.document import Document
from portal.models.profile import Profile
from portal.schemas import DocumentChip, RosterEntry, RosterResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=['roster'])

PENDING = 'pending'
SUBMITTED = 'submitted'


def fetch_students(db: Session) -> list[Profile]:
    return (
        db.query(Profile)
        .outerjoin(Document, Document.user_id == Profile.id)
        .options(contains_eager(Profile.documents))
        .filter(Profile.role == STUDENT)
        .order_by(Profile.full_name.asc(), Document.created_at.desc())
        .all()
    )


def build_roster_entries(profiles: list[Profile]) -> list[RosterEntry]:
    entries: list[RosterEntry] = []
    for profile in profiles:
        try:
            chips = [DocumentChip.model_validate(document) for document in profile.documents]
            entry = RosterEntry(
                id=profile.id,
                full_name=profile.full_name,
                email=profile.email,
                avatar_url=profile.avatar_url,
                school=profile.school,
                class_name=profile.class_name,
                period=profile.period,
                documents=chips,
                status=SUBMITTED if chips else PENDING,
            )
        except ValidationError:
            logger.warning('Skipping malformed student record %s', profile.id)
            continue
        entries.append(entry)
    return entries


def matches_search(entry: RosterEntry, search: str) -> bool:
    term = search.lower()
    if not term:
        return True
    return term in (entry.full_name or '').lower() or term in (entry.school or '').lower()


@router.get('', response_model=RosterResponse)
def list_students(
    search: str = Query(default=''),
    session: AuthorizedSession = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    try:
        profiles = fetch_students(db)
    except SQLAlchemyError as exc:
        logger.exception('Roster query failed for teacher %s', session.user_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Erro ao carregar lista.',
        ) from exc

    students = [entry for entry in build_roster_entries(profiles) if matches_search(entry, search)]
    return RosterResponse(total=len(students), students=students)
