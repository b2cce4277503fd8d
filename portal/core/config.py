import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./portal.db")

SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
# Server only. Never expose to the frontend.
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authenticated")

UPLOADS_BUCKET = os.getenv("UPLOADS_BUCKET", "uploads")
AVATARS_BUCKET = os.getenv("AVATARS_BUCKET", "avatars")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

TEACHER_SIGNUP_CODE = os.getenv("TEACHER_SIGNUP_CODE", "ESCOLA123")

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:3000"])
SECURITY_HEADERS_ENABLED = _get_bool(os.getenv("SECURITY_HEADERS_ENABLED"), default=True)

FRONTEND_OAUTH_REDIRECT_URL = os.getenv("FRONTEND_OAUTH_REDIRECT_URL", "http://localhost:3000/auth/callback")
FRONTEND_PASSWORD_RESET_URL = os.getenv("FRONTEND_PASSWORD_RESET_URL", "http://localhost:3000/atualizar-senha")
INVITE_REDIRECT_URL = os.getenv("INVITE_REDIRECT_URL", "")


def validate_runtime_config() -> None:
    if APP_ENV.lower() != "production":
        return
    if SUPABASE_JWT_SECRET == "change-me":
        raise RuntimeError("SUPABASE_JWT_SECRET must be set in production.")
    if TEACHER_SIGNUP_CODE == "ESCOLA123":
        raise RuntimeError("TEACHER_SIGNUP_CODE must be set in production.")
    if not SUPABASE_URL or not SUPABASE_ANON_KEY or not SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError("SUPABASE_URL, SUPABASE_ANON_KEY and SUPABASE_SERVICE_ROLE_KEY are required.")
