"""Shared SQLAlchemy models: user accounts and the user store operations."""

import logging
from datetime import datetime
from typing import List, Optional

from flask_login import UserMixin
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from errors import AuthorizationError, NotFound, ValidationError
from extensions import db
from permissions import Identity, Role
from utils import atomic

logger = logging.getLogger(__name__)


def enum_values(enum_cls):
    """Persist enum members by their wire value ("user", "pending", ...)."""
    return [member.value for member in enum_cls]


class User(UserMixin, db.Model):
    """Represents an authenticated application user."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(150), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    role = db.Column(
        db.Enum(Role, name="user_role", native_enum=False, values_callable=enum_values, validate_strings=True),
        nullable=False,
        default=Role.USER,
    )
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    recipes = db.relationship(
        "Recipe",
        back_populates="owner",
        cascade="all, delete-orphan",
        foreign_keys="Recipe.owner_id",
    )

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<User {self.email} ({self.role.value})>"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def create_user(email: str, password: str, first_name: str, last_name: str, role=Role.USER) -> User:
    """Create an account. The email is stored trimmed and lowercased."""
    user = User(
        email=normalize_email(email),
        password_hash=generate_password_hash(password),
        first_name=(first_name or "").strip(),
        last_name=(last_name or "").strip(),
        role=Role(role),
    )
    with atomic("creating user", on_conflict=ValidationError("An account with this email already exists")):
        db.session.add(user)
    logger.info("Registered user %s with role %s", user.email, user.role.value)
    return user


def get_user_by_email(email: str) -> Optional[User]:
    try:
        return User.query.filter_by(email=normalize_email(email)).first()
    except SQLAlchemyError:
        logger.exception("Error getting user by email")
        return None


def get_user_by_id(user_id: int) -> Optional[User]:
    try:
        return db.session.get(User, user_id)
    except SQLAlchemyError:
        logger.exception("Error getting user %s", user_id)
        return None


def verify_password(email: str, password: str) -> Optional[User]:
    """Return the user when the password matches, else None."""
    user = get_user_by_email(email)
    if user is None or not check_password_hash(user.password_hash, password or ""):
        return None
    return user


def list_users() -> List[User]:
    try:
        return User.query.order_by(User.created_at.desc(), User.id.desc()).all()
    except SQLAlchemyError:
        logger.exception("Error listing users")
        return []


def _require_admin_on_other(actor: Identity, user_id: int, action: str) -> User:
    if not actor.is_admin:
        raise AuthorizationError("Admin access required")
    if actor.id == user_id:
        raise ValidationError(f"You cannot {action} your own account")
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def update_user_role(actor: Identity, user_id: int, role) -> User:
    """Admin-only role change. Admins cannot change their own role."""
    try:
        new_role = Role(role)
    except ValueError:
        raise ValidationError("Invalid role selected") from None

    user = _require_admin_on_other(actor, user_id, "change the role of")
    with atomic("updating user role"):
        user.role = new_role
    logger.info("User %s role set to %s by admin %s", user.email, new_role.value, actor.id)
    return user


def delete_user(actor: Identity, user_id: int) -> User:
    """Admin-only account removal; owned recipes go with it."""
    user = _require_admin_on_other(actor, user_id, "delete")
    with atomic("deleting user"):
        db.session.delete(user)
    logger.info("User %s deleted by admin %s", user.email, actor.id)
    return user
