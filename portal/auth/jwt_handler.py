import jwt

from portal.core import config


def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        config.SUPABASE_JWT_SECRET,
        algorithms=[config.JWT_ALGORITHM],
        audience=config.JWT_AUDIENCE,
    )
