"""
User Service — registration, credential checks, password changes.

This is the identity layer in front of the request lifecycle. It hands the
rest of the system nothing but a verified ``User.id``.
"""

import logging

from email_validator import EmailNotValidError, validate_email
from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from smartserve.core.exceptions import (
    AuthenticationError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from smartserve.models import db
from smartserve.models.auth import (
    PASSWORD_MIN,
    PHONE_MAX,
    USERNAME_MAX,
    USERNAME_MIN,
    User,
)
from smartserve.utils.crypto import hash_password, verify_password

logger = logging.getLogger(__name__)

_BAD_CREDENTIALS = "Email or password is incorrect"


def _hash(password: str) -> str:
    return hash_password(password, rounds=current_app.config.get("BCRYPT_ROUNDS"))


def _normalize_email(email: str) -> str:
    try:
        valid = validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": "Invalid email format"})
    return valid.normalized.lower()


def _check_text_fields(**fields) -> None:
    """Reject values that are present but not strings (e.g. JSON numbers)."""
    wrong = {name: "must be a string" for name, value in fields.items()
             if value is not None and not isinstance(value, str)}
    if wrong:
        raise ValidationError(
            f"Fields must be strings: {', '.join(sorted(wrong))}", details=wrong,
        )


def _check_password(password, field: str = "password") -> None:
    if not isinstance(password, str) or len(password) < PASSWORD_MIN:
        raise ValidationError(
            f"Password must be at least {PASSWORD_MIN} characters",
            details={field: f"at least {PASSWORD_MIN} characters"},
        )


# ═══════════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════════
def register_user(
    username: str,
    email: str,
    password: str,
    phone: str | None = None,
    address: str | None = None,
) -> User:
    """Create a new user account.

    Raises:
        ValidationError: missing or malformed fields.
        ConflictError: username or email already registered.
    """
    _check_text_fields(
        username=username, email=email, password=password, phone=phone, address=address,
    )
    missing = [name for name, value in
               (("username", username), ("email", email), ("password", password))
               if not value]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={name: "required" for name in missing},
        )

    username = username.strip()
    if not USERNAME_MIN <= len(username) <= USERNAME_MAX:
        raise ValidationError(
            f"Username must be between {USERNAME_MIN} and {USERNAME_MAX} characters",
            details={"username": "invalid length"},
        )
    email = _normalize_email(email)
    _check_password(password)
    if phone and len(phone) > PHONE_MAX:
        raise ValidationError(
            f"Phone cannot exceed {PHONE_MAX} characters", details={"phone": "too long"},
        )

    existing = User.query.filter(or_(User.email == email, User.username == username)).first()
    if existing:
        field = "email" if existing.email == email else "username"
        raise ConflictError("User", field, email if field == "email" else username)

    user = User(
        username=username,
        email=email,
        password_hash=_hash(password),
        phone=phone or None,
        address=address or None,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent registration of the same identity.
        db.session.rollback()
        raise ConflictError("User", "email", email) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Store failure during register_user")
        raise InternalError() from exc

    logger.info("User registered id=%s username=%s", user.id, user.username)
    return user


# ═══════════════════════════════════════════════════════════════
# Lookup & authentication
# ═══════════════════════════════════════════════════════════════
def get_user_by_id(user_id: int) -> User | None:
    """Find a user by ID."""
    return db.session.get(User, user_id)


def get_user_by_email(email: str) -> User | None:
    return User.query.filter_by(email=(email or "").strip().lower()).first()


def get_user(user_id: int) -> User:
    user = get_user_by_id(user_id)
    if not user:
        raise NotFoundError(resource="User", resource_id=user_id)
    return user


def authenticate_user(email: str, password: str) -> User:
    """Authenticate with email + password. Returns User on success.

    Unknown email and wrong password produce the same error.
    """
    _check_text_fields(email=email, password=password)
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = get_user_by_email(email)
    if not user or not verify_password(password, user.password_hash):
        logger.info("Failed login for email=%s", email)
        raise AuthenticationError(_BAD_CREDENTIALS)
    return user


def change_password(user_id: int, current_password: str, new_password: str) -> None:
    """Replace the password hash after verifying the current password."""
    _check_text_fields(current_password=current_password, new_password=new_password)
    user = get_user(user_id)
    if not verify_password(current_password or "", user.password_hash):
        raise AuthenticationError("Current password is incorrect")
    _check_password(new_password, field="new_password")

    user.password_hash = _hash(new_password)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Store failure during change_password")
        raise InternalError() from exc
    logger.info("Password changed user_id=%s", user_id)
