# Overview: Service-layer operations for auth; encapsulates password handling and credential lookups.

"""
Authentication Service

Two disjoint principal tables back authentication: management users
(`users`) and branch staff (`staff`). Login checks management first, then
staff. Usernames are unique across both tables, so at most one row matches.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Tokens are issued separately (see token_service.py)
"""

import bcrypt
import re

from ..extensions import db
from ..errors import ValidationError
from ..models import User, Staff
from ..permissions import PrincipalKind, parse_role
from ..principal import Principal
from ..time_utils import utcnow


USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str):
        raise PasswordValidationError("Password is required")

    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-+=?/\[\]~`;\\]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise (including
    malformed hashes).
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def validate_username(username) -> str:
    if not isinstance(username, str) or not username.strip():
        raise ValidationError("username is required")
    username = username.strip()
    if len(username) > 64:
        raise ValidationError("username exceeds max length 64")
    if not USERNAME_PATTERN.match(username):
        raise ValidationError("username may only contain letters, digits, '_' and '-'")
    return username


def find_management_by_username(username: str) -> User | None:
    return db.session.query(User).filter(User.username == username).first()


def find_staff_by_username(username: str) -> Staff | None:
    return db.session.query(Staff).filter(Staff.username == username).first()


def username_taken(username: str, *, exclude_user_id: int | None = None, exclude_staff_id: int | None = None) -> bool:
    """True if username exists in either principal table (excluding the row being updated)."""
    user_q = db.session.query(User.id).filter(User.username == username)
    if exclude_user_id is not None:
        user_q = user_q.filter(User.id != exclude_user_id)
    if user_q.first() is not None:
        return True

    staff_q = db.session.query(Staff.id).filter(Staff.username == username)
    if exclude_staff_id is not None:
        staff_q = staff_q.filter(Staff.id != exclude_staff_id)
    return staff_q.first() is not None


def principal_for_user(user: User) -> Principal | None:
    role = parse_role(PrincipalKind.MANAGEMENT, user.role)
    if role is None:
        return None
    return Principal(id=user.id, username=user.username, kind=PrincipalKind.MANAGEMENT, role=role)


def principal_for_staff(staff: Staff) -> Principal | None:
    role = parse_role(PrincipalKind.STAFF, staff.role)
    if role is None:
        return None
    return Principal(
        id=staff.id,
        username=staff.username,
        kind=PrincipalKind.STAFF,
        role=role,
        branch_id=staff.branch_id,
    )


def authenticate(username: str, password: str) -> Principal | None:
    """
    Authenticate a principal with username and password.

    Management users are checked first, then staff. Inactive accounts and
    accounts with an unknown role tag never authenticate.

    Returns Principal if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    if not username or not password:
        return None

    account = find_management_by_username(username)
    to_principal = principal_for_user
    if account is None:
        account = find_staff_by_username(username)
        to_principal = principal_for_staff
    if account is None or not account.is_active:
        return None

    if not verify_password(password, account.password_hash):
        return None

    principal = to_principal(account)
    if principal is None:
        return None

    account.last_login_at = utcnow()
    db.session.commit()
    return principal
