from fastapi import Depends, HTTPException

from shared.security import require_admin
from .upstream import check_session


async def require_admin_session(claims: dict = Depends(require_admin)) -> dict:
    """
    Gate for every /admin route: a valid admin JWT whose session auth-service
    still reports as active. Nothing is read from the database before this
    passes.
    """
    user = await check_session(claims["raw_token"])
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return {**claims, "user": user}
