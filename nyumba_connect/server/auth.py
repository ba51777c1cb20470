"""Authentication and authorization utilities and routes."""
import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import bcrypt
from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from . import schemas
from .config import BCRYPT_ROUNDS, LOCKOUT_MINUTES, MAX_FAILED_LOGINS, TOKEN_EXPIRY_MINUTES
from .database import get_db
from .logging_config import configure_logging
from .models import User

router = APIRouter(prefix="/auth", tags=["auth"])
logger = configure_logging()

# In-memory token store: token -> {"user_id": int, "csrf_token": str, "expires": datetime}
TOKEN_STORE: Dict[str, Dict[str, Any]] = {}

SELF_REGISTER_ROLES = ("student", "alumni")


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def issue_token(user_id: int) -> Dict[str, Any]:
    token = secrets.token_urlsafe(32)
    entry = {
        "user_id": user_id,
        "csrf_token": secrets.token_hex(32),
        "expires": datetime.utcnow() + timedelta(minutes=TOKEN_EXPIRY_MINUTES),
    }
    TOKEN_STORE[token] = entry
    return {"token": token, **entry}


@router.post("/register")
def register(payload: schemas.RegisterRequest, db: Session = Depends(get_db)):
    if payload.role not in SELF_REGISTER_ROLES:
        raise HTTPException(status_code=400, detail="Invalid role")
    if db.query(User).filter(User.login == payload.login).first():
        raise HTTPException(status_code=400, detail="Login already exists")

    user = User(login=payload.login, name=payload.name, password_hash=hash_password(payload.password), role=payload.role)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("REGISTER_SUCCESS login=%s role=%s", payload.login, payload.role)
    return {"message": "Registration successful"}


@router.post("/login", response_model=schemas.LoginResponse)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    user: Optional[User] = db.query(User).filter(User.login == payload.login).first()
    if not user:
        logger.info("LOGIN_FAIL login=%s reason=not_found", payload.login)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if user.lock_until and user.lock_until > datetime.utcnow():
        logger.warning("ACCOUNT_BLOCKED login=%s locked_until=%s", payload.login, user.lock_until)
        raise HTTPException(status_code=403, detail=f"Account locked until {user.lock_until}")

    if not bcrypt.checkpw(payload.password.encode(), user.password_hash.encode()):
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
        if user.failed_login_attempts >= MAX_FAILED_LOGINS:
            user.lock_until = datetime.utcnow() + timedelta(minutes=LOCKOUT_MINUTES)
            logger.warning("ACCOUNT_BLOCKED login=%s locked_until=%s", payload.login, user.lock_until)
        db.commit()
        logger.info("LOGIN_FAIL login=%s reason=bad_password", payload.login)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    user.failed_login_attempts = 0
    user.lock_until = None
    db.commit()

    issued = issue_token(user.id)
    logger.info("LOGIN_SUCCESS login=%s user_id=%s", user.login, user.id)
    return schemas.LoginResponse(
        token=issued["token"], csrf_token=issued["csrf_token"], user=schemas.UserOut.model_validate(user)
    )


def _validate_token(header: str | None) -> Dict[str, Any]:
    if not header or not header.startswith("Bearer "):
        logger.warning("UNAUTHORIZED_ACCESS reason=missing_token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    token = header.split(" ", 1)[1]
    token_data = TOKEN_STORE.get(token)
    if not token_data:
        logger.warning("UNAUTHORIZED_ACCESS reason=unknown_token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if token_data["expires"] < datetime.utcnow():
        logger.warning("UNAUTHORIZED_ACCESS reason=expired_token")
        TOKEN_STORE.pop(token, None)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    return token_data


def get_current_session(authorization: str | None = Header(default=None)) -> Dict[str, Any]:
    """FastAPI dependency returning the authenticated session entry."""
    return _validate_token(authorization)


def get_current_user_id(session: Dict[str, Any] = Depends(get_current_session)) -> int:
    """FastAPI dependency returning authenticated user's id."""
    return int(session["user_id"])


def check_csrf_token(session: Dict[str, Any], submitted: str | None) -> bool:
    if not submitted:
        return False
    return secrets.compare_digest(str(session["csrf_token"]), submitted)


def require_admin(db: Session = Depends(get_db), current_user_id: int = Depends(get_current_user_id)) -> User:
    user: Optional[User] = db.query(User).filter(User.id == current_user_id).first()
    if not user or user.role != "admin":
        logger.warning("UNAUTHORIZED_ACCESS reason=not_admin user_id=%s", current_user_id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Administrator access required")
    return user
