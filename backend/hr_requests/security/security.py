from datetime import datetime, timedelta, timezone
from jose import jwt
from hr_requests.core.config import get_settings

ALG = "HS256"

_settings = get_settings()
SECRET = _settings.jwt_secret
TOKEN_EXP_HOURS = _settings.jwt_exp_hours


def create_token(user_id: str, *, name: str, role: str) -> str:
    """Create a JWT for a caller; issuance normally belongs to the identity service."""
    now = datetime.now(timezone.utc)
    return jwt.encode(
        {
            "sub": str(user_id),
            "name": name,
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(hours=TOKEN_EXP_HOURS)).timestamp()),
        },
        SECRET,
        algorithm=ALG,
    )


def decode_token(token: str) -> dict:
    """Verify a JWT and return its claims."""
    return jwt.decode(token, SECRET, algorithms=[ALG])
