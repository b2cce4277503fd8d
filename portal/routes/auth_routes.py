import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse, Response
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.auth.dependencies import (
    PAGE_ROLES,
    STUDENT,
    TEACHER,
    AuthorizedSession,
    landing_page_for,
    lookup_role,
    require_account,
    resolve_access,
)
from portal.auth.session import SessionContext, get_session_context
from portal.core import config
from portal.core.platform import PlatformError, PortalPlatform, get_platform
from portal.database import get_db
from portal.models.profile import Profile

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

MIN_PASSWORD_LENGTH = 6
MIN_NEW_PASSWORD_LENGTH = 8
OAUTH_PROVIDERS = {"google"}


def _normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    local, _, domain = normalized.partition("@")
    if not local or "." not in domain:
        raise ValueError("E-mail inválido")
    return normalized


class StudentSignupRequest(BaseModel):
    full_name: str
    email: str
    password: str
    confirm_password: str

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        normalized = value.strip()
        if len(normalized) < 3:
            raise ValueError("Nome muito curto")
        return normalized

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Mínimo {MIN_PASSWORD_LENGTH} caracteres")
        return value

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Senhas não conferem")
        return self


class TeacherSignupRequest(StudentSignupRequest):
    secret_code: str

    @field_validator("secret_code")
    @classmethod
    def validate_secret_code(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("O código de acesso é obrigatório")
        return value.strip()


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Mínimo {MIN_PASSWORD_LENGTH} caracteres")
        return value


class ForgotPasswordRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)


class PasswordUpdateRequest(BaseModel):
    password: str
    confirm_password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_NEW_PASSWORD_LENGTH:
            raise ValueError(f"Mínimo {MIN_NEW_PASSWORD_LENGTH} caracteres")
        return value

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("As senhas não coincidem")
        return self


class SignupResponse(BaseModel):
    message: str
    redirect: str


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str = "bearer"
    role: str | None = None
    redirect: str


class MeResponse(BaseModel):
    id: str
    email: str | None = None
    role: str
    landing_page: str


class GateResponse(BaseModel):
    page: str
    allowed: bool
    redirect: str | None = None
    message: str | None = None


def ensure_profile(db: Session, user_id: str, email: str, full_name: str, role: str) -> None:
    """Creates the profile row for a new account. Existing rows, and their role, are left as they are."""
    if db.query(Profile.id).filter(Profile.id == user_id).first() is not None:
        return
    db.add(Profile(id=user_id, email=email, full_name=full_name, role=role))
    db.commit()


def register_account(
    data: StudentSignupRequest,
    role: str,
    db: Session,
    platform: PortalPlatform,
) -> None:
    try:
        user_id = platform.sign_up(
            data.email,
            data.password,
            metadata={"full_name": data.full_name, "role": role},
        )
    except PlatformError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc

    if not user_id:
        return
    try:
        ensure_profile(db, user_id, data.email, data.full_name, role)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Could not create profile for %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable. Verify DATABASE_URL and Postgres credentials.",
        ) from exc


@router.post("/signup/student", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
def signup_student(
    data: StudentSignupRequest,
    db: Session = Depends(get_db),
    platform: PortalPlatform = Depends(get_platform),
):
    register_account(data, STUDENT, db, platform)
    return SignupResponse(message="Conta de aluno criada!", redirect=landing_page_for(STUDENT))


@router.post("/signup/teacher", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
def signup_teacher(
    data: TeacherSignupRequest,
    db: Session = Depends(get_db),
    platform: PortalPlatform = Depends(get_platform),
):
    if data.secret_code != config.TEACHER_SIGNUP_CODE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Código de acesso da escola inválido. Solicite à direção.",
        )
    register_account(data, TEACHER, db, platform)
    return SignupResponse(
        message="Conta de professor criada com sucesso!",
        redirect=landing_page_for(TEACHER),
    )


@router.post("/login", response_model=LoginResponse)
def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    platform: PortalPlatform = Depends(get_platform),
):
    try:
        tokens = platform.sign_in(data.email, data.password)
    except PlatformError as exc:
        logger.info("Failed login for %s: %s", data.email, exc.message)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Credenciais inválidas.") from exc

    try:
        role = lookup_role(db, tokens["user_id"])
    except SQLAlchemyError:
        logger.exception("Role lookup failed after login for %s", tokens["user_id"])
        role = None

    return LoginResponse(
        access_token=tokens["access_token"],
        refresh_token=tokens.get("refresh_token"),
        expires_in=tokens.get("expires_in"),
        role=role,
        redirect=landing_page_for(role) if role else landing_page_for(STUDENT),
    )


@router.get("/oauth/{provider}")
def oauth_login(provider: str, platform: PortalPlatform = Depends(get_platform)):
    if provider not in OAUTH_PROVIDERS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Provedor não suportado.")
    try:
        url = platform.oauth_url(provider, redirect_to=config.FRONTEND_OAUTH_REDIRECT_URL)
    except PlatformError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Erro no Google: {exc.message}") from exc
    return RedirectResponse(url=url)


@router.post("/password/forgot")
def forgot_password(data: ForgotPasswordRequest, platform: PortalPlatform = Depends(get_platform)):
    try:
        platform.send_password_reset(data.email, redirect_to=config.FRONTEND_PASSWORD_RESET_URL)
    except PlatformError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Erro ao solicitar recuperação: {exc.message}",
        ) from exc
    return {"message": "Se o e-mail existir, você receberá um link de recuperação."}


@router.put("/password")
def update_password(
    data: PasswordUpdateRequest,
    session: SessionContext = Depends(get_session_context),
    platform: PortalPlatform = Depends(get_platform),
):
    try:
        platform.update_password(session.user_id, data.password)
    except PlatformError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Erro ao salvar senha: {exc.message}",
        ) from exc
    return {"message": "Senha alterada com sucesso!", "redirect": "/login"}


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    session: SessionContext = Depends(get_session_context),
    platform: PortalPlatform = Depends(get_platform),
):
    try:
        platform.sign_out(session.access_token)
    except PlatformError as exc:
        logger.warning("Sign-out for %s was not confirmed: %s", session.user_id, exc.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=MeResponse)
def me(session: AuthorizedSession = Depends(require_account)):
    return MeResponse(
        id=session.user_id,
        email=session.email,
        role=session.role,
        landing_page=landing_page_for(session.role),
    )


@router.get("/gate", response_model=GateResponse)
def gate(
    page: str = Query(...),
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    if page not in PAGE_ROLES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Página desconhecida.")
    decision = resolve_access(db, session, PAGE_ROLES[page])
    return GateResponse(page=page, allowed=decision.allowed, redirect=decision.redirect, message=decision.message)
