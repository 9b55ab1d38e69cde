"""Authentication API router."""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from storefront.auth import (
    SessionStore,
    extract_bearer_token,
    get_session_store,
    hash_password,
    verify_password,
)
from storefront.database import get_db, unit_of_work
from storefront.errors import ValidationError
from storefront.models import User
from storefront.monitoring import auth_attempts_counter, auth_failures_counter
from storefront.schemas import LoginRequest, LoginResponse, MessageResponse, RegistrationRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=LoginResponse)
async def register(
    request: RegistrationRequest,
    db: Session = Depends(get_db),
    sessions: SessionStore = Depends(get_session_store)
):
    """Create an account and log the new user in."""
    auth_attempts_counter.add(1, {"type": "register"})

    email = request.email.lower()
    if db.query(User).filter(User.email == email).first():
        auth_failures_counter.add(1, {"reason": "email_taken"})
        raise ValidationError("This email is already registered")

    user = User(
        first_name=request.first_name,
        last_name=request.last_name,
        email=email,
        password=hash_password(request.password),
        admin=False
    )
    with unit_of_work(db):
        db.add(user)
        db.flush()
        user_id = user.id

    logger.info("User registered", extra={"user_id": user_id})

    return LoginResponse(token=sessions.create(user_id), user_id=user_id)


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    db: Session = Depends(get_db),
    sessions: SessionStore = Depends(get_session_store)
):
    """Authenticate user and return a session token."""
    auth_attempts_counter.add(1, {"type": "login"})

    user = db.query(User).filter(User.email == request.email.lower()).first()
    if user is None:
        auth_failures_counter.add(1, {"reason": "invalid_email"})
        logger.warning("Login failed: Unknown email")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not verify_password(request.password, user.password):
        auth_failures_counter.add(1, {"reason": "invalid_password"})
        logger.warning("Login failed: Invalid password", extra={"user_id": user.id})
        raise HTTPException(status_code=401, detail="Invalid email or password")

    with unit_of_work(db):
        user.log_date = datetime.utcnow()

    logger.info("User logged in successfully", extra={"user_id": user.id})

    return LoginResponse(token=sessions.create(user.id), user_id=user.id)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    authorization: Optional[str] = Header(None),
    sessions: SessionStore = Depends(get_session_store)
):
    """End the current session. Logging out without a session is a no-op."""
    token = extract_bearer_token(authorization)
    if token is not None:
        sessions.destroy(token)
    return {"message": "Logged out"}
