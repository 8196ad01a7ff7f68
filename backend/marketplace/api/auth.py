# backend/marketplace/api/auth.py

from fastapi import APIRouter, Depends, Response
from fastapi.responses import ORJSONResponse
from fastapi.security import OAuth2PasswordBearer
from jose import jwt
from sqlalchemy.orm import Session
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from .. import crud
from ..core.config import settings
from ..core.exceptions import Unauthenticated
from ..database import get_db
from ..schemas.user import LoginRequest, TokenResponse, UserResponse
from ..utils.auth import verify_password

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"], default_response_class=ORJSONResponse)

SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES
ACCESS_TOKEN_COOKIE = "access_token"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


@router.post("/login", response_model=TokenResponse)
def login(
    *,
    db: Session = Depends(get_db),
    credentials: LoginRequest,
    response: Response,
) -> TokenResponse:
    """Exchange email and password for a session token.

    The token is returned in the body for API clients and also set as an
    HTTP-only cookie for the browser front end.
    """
    user = crud.user.get_by_email(db, credentials.email)
    if (
        user is None
        or not user.is_active
        or not verify_password(credentials.password, user.password)
    ):
        logger.info("Failed sign-in for %s", credentials.email)
        raise Unauthenticated("Invalid credentials")

    token = create_access_token({"sub": user.email, "role": user.role.value})
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        token,
        httponly=True,
        samesite="lax",
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    logger.info("User %s signed in", user.id)
    return TokenResponse(
        message="Signed in successfully",
        access_token=token,
        user=UserResponse.model_validate(user),
    )
