from .errors import error_response
from .auth import get_password_hash, verify_password, normalize_email
