import os
import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Depends, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.errors import AuthError, register_error_handlers
from shared.security import require_user
from .db import SessionLocal, init_schema
from .models import AdminSession, User
from .passwords import verify_password
from .schemas import LoginIn, SessionOut, TokenOut
from .tokens import ACCESS_TOKEN_TTL, make_access_token

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"

app = FastAPI(title="auth-service")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in prod
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.on_event("startup")
def startup():
    if os.getenv("INIT_SCHEMA", "false").lower() == "true":
        init_schema()


def authenticate(db: Session, email: str, password: str) -> AdminSession:
    """Open a new admin session, or raise AuthError without saying which field was wrong."""
    user = db.scalars(select(User).where(User.email == email.lower())).first()

    if not verify_password(password, user.password_hash if user else None):
        raise AuthError(INVALID_CREDENTIALS)
    if not user.is_admin:
        raise AuthError(INVALID_CREDENTIALS)

    session = AdminSession(user_id=user.id)
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def current_session(claims: dict = Depends(require_user), db: Session = Depends(get_db)) -> AdminSession:
    sid = claims.get("sid")
    if not sid:
        raise HTTPException(status_code=401, detail="Not authenticated")

    session = db.get(AdminSession, sid)
    if not session or not session.is_active or str(session.user_id) != claims.get("sub"):
        raise HTTPException(status_code=401, detail="Not authenticated")
    return session


def _issue(session: AdminSession) -> TokenOut:
    user = session.user
    token = make_access_token(user.id, user.email, user.is_admin, session.id)
    return TokenOut(access_token=token, expires_in=ACCESS_TOKEN_TTL)


@app.post("/auth/login", response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    try:
        session = authenticate(db, payload.email, payload.password)
    except SQLAlchemyError:
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to open session")

    logger.info("auth.signed_in user=%s session=%s", session.user.email, session.id)
    return _issue(session)


@app.post("/auth/logout")
def logout(session: AdminSession = Depends(current_session), db: Session = Depends(get_db)):
    session.revoked_at = datetime.now(timezone.utc)
    db.commit()
    logger.info("auth.signed_out user_id=%s session=%s", session.user_id, session.id)
    return {"ok": True}


@app.post("/auth/refresh", response_model=TokenOut)
def refresh(session: AdminSession = Depends(current_session)):
    logger.info("auth.token_refreshed user_id=%s session=%s", session.user_id, session.id)
    return _issue(session)


@app.get("/auth/session", response_model=SessionOut)
def get_session(session: AdminSession = Depends(current_session)):
    user = session.user
    return SessionOut(id=user.id, email=user.email, is_admin=user.is_admin, session_id=session.id)


@app.get("/health")
def health():
    return {"ok": True}
