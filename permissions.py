# permissions.py
"""
Role-based access control.

Roles form a closed, totally ordered set: user < contributor < admin.
Every check goes through ``at_least(role, required)``; a higher role always
passes a guard written for a lower one.

- role_required(minimum)    main route decorator (login + minimum role)
- contributor_required      reviewers: contributor or admin
- admin_required            admin only
- redirect_if_authenticated for login/register pages
- can_* helpers             True/False for templates

Workflow and store functions never read the session. Routes turn the
logged-in user into an ``Identity`` and pass it down explicitly.
"""

import enum
from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import abort, redirect, url_for
from flask_login import current_user, login_required


class Role(str, enum.Enum):
    USER = "user"
    CONTRIBUTOR = "contributor"
    ADMIN = "admin"


ROLE_ORDER = (Role.USER, Role.CONTRIBUTOR, Role.ADMIN)


def at_least(role, required) -> bool:
    """True if ``role`` ranks at or above ``required``. Unknown roles never pass."""
    try:
        role = Role(role)
    except ValueError:
        return False
    return ROLE_ORDER.index(role) >= ROLE_ORDER.index(Role(required))


@dataclass(frozen=True)
class Identity:
    """The authenticated caller of a store or workflow operation."""

    id: int
    role: Role

    @classmethod
    def from_user(cls, user) -> "Identity":
        return cls(id=user.id, role=Role(user.role))

    def at_least(self, required) -> bool:
        return at_least(self.role, required)

    @property
    def is_reviewer(self) -> bool:
        return self.at_least(Role.CONTRIBUTOR)

    @property
    def is_admin(self) -> bool:
        return self.at_least(Role.ADMIN)


def current_identity() -> Optional[Identity]:
    """Identity of the logged-in user, or None for anonymous visitors."""
    if not current_user.is_authenticated:
        return None
    return Identity.from_user(current_user)


# ----------------------------- DECORATORS ----------------------------- #
def role_required(minimum):
    """
    Restrict a view to users ranked at least ``minimum``.

        @role_required(Role.CONTRIBUTOR)
        def view(): ...

    - anonymous -> login page, with ``next`` set to the requested URL
    - insufficient role -> 403
    """
    minimum = Role(minimum)

    def decorator(view_func):
        @wraps(view_func)
        @login_required
        def wrapped(*args, **kwargs):
            if at_least(getattr(current_user, "role", None), minimum):
                return view_func(*args, **kwargs)
            abort(403)

        return wrapped
    return decorator


contributor_required = role_required(Role.CONTRIBUTOR)
admin_required = role_required(Role.ADMIN)


def redirect_if_authenticated(view_func):
    """Send logged-in users away from the login and registration pages."""

    @wraps(view_func)
    def wrapped(*args, **kwargs):
        if current_user.is_authenticated:
            return redirect(url_for("recipes.my_recipes"))
        return view_func(*args, **kwargs)

    return wrapped


# ------------------------------ UI HELPERS ----------------------------- #
def _is_at_least(required) -> bool:
    return bool(current_user.is_authenticated and at_least(getattr(current_user, "role", None), required))


def can_review():            return _is_at_least(Role.CONTRIBUTOR)
def can_curate_featured():   return _is_at_least(Role.CONTRIBUTOR)
def can_manage_categories(): return _is_at_least(Role.ADMIN)
def can_manage_users():      return _is_at_least(Role.ADMIN)
