from fastapi import Depends, Request
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .. import crud
from ..core.exceptions import Forbidden, Unauthenticated
from ..core.identity import CallerIdentity
from ..database import get_db
from ..models.user import User, UserRole
from .auth import ACCESS_TOKEN_COOKIE, ALGORITHM, SECRET_KEY, oauth2_scheme


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db), request: Request = None) -> User:
    jwt_token = token or (request.cookies.get(ACCESS_TOKEN_COOKIE) if request else None)
    if not jwt_token:
        raise Unauthenticated("Authentication required.")
    try:
        payload = jwt.decode(jwt_token, SECRET_KEY, algorithms=[ALGORITHM])
        email: str = payload.get("sub")
    except JWTError:
        raise Unauthenticated("Could not validate credentials")
    if email is None:
        raise Unauthenticated("Could not validate credentials")
    user = crud.user.get_by_email(db, email)
    if user is None or not user.is_active:
        raise Unauthenticated("Could not validate credentials")
    return user


def get_current_identity(current_user: User = Depends(get_current_user)) -> CallerIdentity:
    return CallerIdentity.from_user(current_user)


def require_roles(*roles: UserRole, message: str = "Access denied."):
    """Build a dependency that admits only callers holding one of ``roles``."""

    def _dependency(caller: CallerIdentity = Depends(get_current_identity)) -> CallerIdentity:
        if caller.role not in roles:
            raise Forbidden(message)
        return caller

    return _dependency


require_admin = require_roles(UserRole.ADMIN, message="Access denied. Admin privileges required.")
require_client = require_roles(UserRole.CLIENT, message="Customer access required")
require_technician = require_roles(
    UserRole.TECHNICIAN, message="Access denied. Technician privileges required."
)
require_technician_or_admin = require_roles(
    UserRole.TECHNICIAN,
    UserRole.ADMIN,
    message="Access denied. Technician or admin privileges required.",
)
