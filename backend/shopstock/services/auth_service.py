# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Accounts and password authentication.

Every sale and inventory change is attributed to a user account.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, upper, lower and digit required
- Accounts linked to an external identity provider may have no password
  hash; they can never pass password login
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import InvalidInputError
from ..extensions import db
from ..models import User
from ..permissions import ROLE_USER, validate_role
from ..time_utils import utcnow


class PasswordValidationError(InvalidInputError):
    """Raised when password doesn't meet strength requirements."""

    code = "WEAK_PASSWORD"


USERNAME_RE = re.compile(r"^[A-Za-z0-9_.\- ]{3,64}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


PASSWORD_MIN_LENGTH = 8

# (pattern, what is missing)
PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "one uppercase letter"),
    (re.compile(r"[a-z]"), "one lowercase letter"),
    (re.compile(r"\d"), "one digit"),
)


def validate_password_strength(password) -> None:
    """Raise PasswordValidationError for the first rule the password breaks."""
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        raise PasswordValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    for pattern, requirement in PASSWORD_RULES:
        if not pattern.search(password):
            raise PasswordValidationError(f"Password must contain at least {requirement}")


def validate_username(username) -> str:
    if not isinstance(username, str) or not USERNAME_RE.match(username.strip()):
        raise InvalidInputError(
            "Username must be 3-64 characters: letters, digits, spaces, '.', '_' or '-'"
        )
    return username.strip()


def hash_password(password: str) -> str:
    """Strength-check, then bcrypt with the configured cost (BCRYPT_ROUNDS)."""
    validate_password_strength(password)
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A missing hash never verifies.
    """
    if not password_hash or not isinstance(password, str):
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def create_user(
    username: str,
    email: str,
    password: str | None,
    role: str = ROLE_USER,
    firebase_uid: str | None = None,
) -> User:
    """
    Create new user.

    password may be None only for externally authenticated accounts
    (firebase_uid set). Username and email are globally unique.

    Raises:
        InvalidInputError: malformed fields, unknown role, duplicate user
        PasswordValidationError: password doesn't meet requirements
    """
    username = validate_username(username)
    if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
        raise InvalidInputError("A valid email address is required")
    email = email.strip().lower()

    if not validate_role(role):
        raise InvalidInputError(f"Invalid role: {role}")

    if password is None and not firebase_uid:
        raise InvalidInputError("Password is required")

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise InvalidInputError("Username or email already exists")

    password_hash = hash_password(password) if password is not None else None

    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        firebase_uid=firebase_uid,
        role=role,
        permissions=None,
    )

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration
        db.session.rollback()
        raise InvalidInputError("Username or email already exists")
    return user


def authenticate(identifier: str, password: str) -> User | None:
    """
    Authenticate user with username (or email) and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    if not identifier or not password:
        return None

    user = db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == identifier.strip().lower()),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
