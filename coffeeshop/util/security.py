import jwt
from datetime import datetime, timedelta, timezone
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError
from coffeeshop.config import settings

ph = PasswordHasher()

def hash_pw(p: str) -> str:
    return ph.hash(p)

def verify_pw(hashv: str, p: str) -> bool:
    try:
        return ph.verify(hashv, p)
    except (VerificationError, InvalidHashError):
        return False

def create_session_token(admin_id: int, ttl_min: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=settings.SESSION_TTL_MIN if ttl_min is None else ttl_min)
    payload = {"sub": str(admin_id), "iss": settings.JWT_ISS, "iat": int(now.timestamp()), "exp": int(exp.timestamp())}
    return jwt.encode(payload, settings.APP_SECRET, algorithm="HS256")

def decode_session_token(token: str) -> int:
    """Return the admin id carried by a session token.

    Raises ``jwt.InvalidTokenError`` for bad signatures, wrong issuer,
    expiry, or a malformed subject.
    """
    data = jwt.decode(token, settings.APP_SECRET, algorithms=["HS256"], issuer=settings.JWT_ISS)
    try:
        return int(data["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise jwt.InvalidTokenError("bad subject") from e
