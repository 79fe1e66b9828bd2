"""Login, registration and logout."""

import re

from flask import current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required, login_user, logout_user

from errors import ValidationError
from extensions import db, login_manager
from models import User, create_user, get_user_by_email, verify_password
from permissions import redirect_if_authenticated
from utils import is_safe_redirect

from . import bp

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@login_manager.user_loader
def load_user(user_id: str | None) -> User | None:
    """Resolve a ``User`` instance for Flask-Login sessions."""

    if not user_id:
        return None
    return db.session.get(User, int(user_id))


def _after_login_url():
    target = request.values.get("next")
    return target if is_safe_redirect(target) else url_for("recipes.my_recipes")


def registration_errors(form) -> list[str]:
    errors = []
    email = (form.get("email") or "").strip()
    password = form.get("password") or ""
    confirm = form.get("confirm_password") or ""
    required = (email, password, confirm, form.get("first_name", "").strip(), form.get("last_name", "").strip())

    if not all(required):
        errors.append("All fields are required")
    min_length = current_app.config.get("MIN_PASSWORD_LENGTH", 8)
    if password and len(password) < min_length:
        errors.append(f"Password must be at least {min_length} characters long")
    if password != confirm:
        errors.append("Passwords do not match")
    if email and not EMAIL_RE.match(email):
        errors.append("Invalid email format")
    return errors


@bp.route("/login", methods=["GET", "POST"])
@redirect_if_authenticated
def login():
    if request.method == "POST":
        email = request.form.get("email", "")
        password = request.form.get("password", "")
        if not email or not password:
            flash("Email and password are required", "danger")
        else:
            user = verify_password(email, password)
            if user:
                login_user(user)
                current_app.logger.info("User %s logged in", user.email)
                return redirect(_after_login_url())
            flash("Invalid email or password", "danger")
    return render_template("auth/login.html", next=request.values.get("next", ""))


@bp.route("/register", methods=["GET", "POST"])
@redirect_if_authenticated
def register():
    if request.method == "POST":
        form = request.form
        errors = registration_errors(form)
        if not errors and get_user_by_email(form["email"]):
            errors.append("An account with this email already exists")

        if not errors:
            try:
                user = create_user(form["email"], form["password"], form["first_name"], form["last_name"])
            except ValidationError as exc:
                errors.append(exc.message)
            else:
                login_user(user)
                return redirect(url_for("recipes.my_recipes"))

        flash(", ".join(errors), "danger")
        return render_template("auth/register.html", form_data=form)

    return render_template("auth/register.html", form_data={})


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    current_app.logger.info("User %s logged out", current_user.email)
    logout_user()
    return redirect(url_for("ui.home"))
