import os
from fastapi import Header, HTTPException, Depends
from jose import jwt, JWTError, ExpiredSignatureError

JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET is not set")
ALGO = "HS256"

JWT_ISSUER = os.getenv("JWT_ISSUER")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE")


def decode_token(token: str) -> dict:
    options = {"verify_aud": bool(JWT_AUDIENCE)}
    return jwt.decode(
        token,
        JWT_SECRET,
        algorithms=[ALGO],
        audience=JWT_AUDIENCE,
        issuer=JWT_ISSUER,
        options=options,
    )


def require_user(authorization: str = Header(default=None)) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")

    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")

    try:
        claims = decode_token(token)
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    # Attach raw token so the session guard can forward it to auth-service
    claims["raw_token"] = token
    return claims


def require_admin(claims: dict = Depends(require_user)) -> dict:
    if not claims.get("is_admin"):
        raise HTTPException(status_code=403, detail="Admin only")
    return claims
