# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every sale, cancel and refund must be attributable to a staff member.
Uses bcrypt for password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, Role, UserRole, Store
from tillbook.time_utils import utcnow


DEFAULT_ROLES = [
    ("admin", "Full system access"),
    ("manager", "Store management, cancels and refunds"),
    ("cashier", "POS sales only"),
]


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison. Malformed hashes never verify."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    username: str,
    email: str,
    password: str,
    store_id: int | None = None,
    display_name: str | None = None,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValueError: If user exists or store doesn't exist
        PasswordValidationError: If password doesn't meet requirements
    """
    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()

    if existing:
        raise ValueError("Username or email already exists")

    if store_id is not None and db.session.get(Store, store_id) is None:
        raise ValueError("Store not found")

    user = User(
        username=username,
        email=email,
        display_name=display_name,
        password_hash=hash_password(password),
        store_id=store_id,
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username (or email) and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(
        db.or_(User.username == username, User.email == username),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def assign_role(user_id: int, role_name: str) -> UserRole:
    """Assign role to user."""
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise ValueError(f"Role {role_name} not found")

    existing = db.session.query(UserRole).filter_by(
        user_id=user_id,
        role_id=role.id
    ).first()

    if existing:
        return existing

    user_role = UserRole(user_id=user_id, role_id=role.id)

    db.session.add(user_role)
    db.session.commit()
    return user_role


def create_default_roles() -> None:
    """Create standard roles if they don't exist."""
    for name, desc in DEFAULT_ROLES:
        existing = db.session.query(Role).filter_by(name=name).first()
        if not existing:
            db.session.add(Role(name=name, description=desc))

    db.session.commit()
