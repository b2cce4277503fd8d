"""Role gate for routes that serve a single kind of account.

Every gated request reads the caller's stored role once. A caller with the
wrong role is sent to the landing page of the role they do have; a caller
whose role cannot be read is sent back to the login page.
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.auth.session import LOGIN_PATH, SessionContext, get_session_context, login_required
from portal.database import get_db
from portal.models.profile import Profile

logger = logging.getLogger(__name__)

STUDENT = "student"
TEACHER = "teacher"

LANDING_PAGES = {
    STUDENT: "/dashboard",
    TEACHER: "/admin",
}

ACCESS_DENIED_MESSAGES = {
    STUDENT: "Acesso negado. Área restrita a alunos.",
    TEACHER: "Acesso negado. Área restrita a professores.",
}

PAGE_ROLES = {
    "admin": TEACHER,
    "dashboard": STUDENT,
    "profile": None,
    "account": None,
}


@dataclass(frozen=True)
class AuthorizedSession(SessionContext):
    role: str


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    role: str | None = None
    redirect: str | None = None
    message: str | None = None


def landing_page_for(role: str | None) -> str:
    return LANDING_PAGES.get(role or "", LOGIN_PATH)


def lookup_role(db: Session, user_id: str) -> str | None:
    return db.query(Profile.role).filter(Profile.id == user_id).scalar()


def evaluate_access(required_role: str | None, stored_role: str | None) -> AccessDecision:
    if stored_role not in LANDING_PAGES:
        return AccessDecision(
            allowed=False,
            redirect=LOGIN_PATH,
            message="Perfil não encontrado. Entre novamente.",
        )

    if required_role is None or stored_role == required_role:
        return AccessDecision(allowed=True, role=stored_role)

    return AccessDecision(
        allowed=False,
        role=stored_role,
        redirect=landing_page_for(stored_role),
        message=ACCESS_DENIED_MESSAGES[required_role],
    )


def resolve_access(db: Session, session: SessionContext, required_role: str | None) -> AccessDecision:
    try:
        stored_role = lookup_role(db, session.user_id)
    except SQLAlchemyError:
        logger.exception("Role lookup failed for user %s", session.user_id)
        return AccessDecision(
            allowed=False,
            redirect=LOGIN_PATH,
            message="Não foi possível verificar seu acesso. Entre novamente.",
        )
    return evaluate_access(required_role, stored_role)


class RoleGate:
    def __init__(self, required_role: str | None = None):
        self.required_role = required_role

    def __call__(
        self,
        session: SessionContext = Depends(get_session_context),
        db: Session = Depends(get_db),
    ) -> AuthorizedSession:
        decision = resolve_access(db, session, self.required_role)

        if decision.allowed:
            return AuthorizedSession(
                user_id=session.user_id,
                email=session.email,
                access_token=session.access_token,
                role=decision.role,
            )

        if decision.redirect == LOGIN_PATH:
            raise login_required(decision.message)

        logger.warning(
            "Denied %s access to %s-only route, redirecting to %s",
            decision.role,
            self.required_role,
            decision.redirect,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": decision.message, "redirect": decision.redirect},
        )


require_account = RoleGate()
require_student = RoleGate(STUDENT)
require_teacher = RoleGate(TEACHER)
