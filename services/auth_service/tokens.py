import os, time
from jose import jwt

from shared.security import ALGO, JWT_AUDIENCE, JWT_ISSUER, JWT_SECRET

ACCESS_TOKEN_TTL = int(os.getenv("ACCESS_TOKEN_TTL", "3600"))


def make_access_token(user_id: int, email: str, is_admin: bool, session_id: str, ttl_seconds: int = ACCESS_TOKEN_TTL) -> str:
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "email": email,
        "is_admin": is_admin,
        "sid": session_id,
        "iat": now,
        "exp": now + ttl_seconds,
        "typ": "access",
    }
    if JWT_ISSUER:
        payload["iss"] = JWT_ISSUER
    if JWT_AUDIENCE:
        payload["aud"] = JWT_AUDIENCE

    return jwt.encode(payload, JWT_SECRET, algorithm=ALGO)
