"""Admin dashboard: user list, role changes, account removal."""

from flask import flash, redirect, render_template, request, url_for

from errors import ValidationError
from models import delete_user, get_user_by_email, list_users, update_user_role
from permissions import ROLE_ORDER, admin_required, current_identity

from . import bp


@bp.route("/")
@admin_required
def dashboard():
    search_email = request.args.get("search", "").strip()
    if search_email:
        user = get_user_by_email(search_email)
        users = [user] if user else []
    else:
        users = list_users()
    return render_template("admin/dashboard.html", users=users, search_email=search_email, roles=ROLE_ORDER)


@bp.route("/users/<int:user_id>/role", methods=["POST"])
@admin_required
def change_role(user_id: int):
    role = request.form.get("role", "")
    try:
        user = update_user_role(current_identity(), user_id, role)
    except ValidationError as exc:
        flash(exc.message, "danger")
    else:
        flash(f"Successfully updated {user.email} to {user.role.value}", "success")
    return redirect(url_for("admin.dashboard"))


@bp.route("/users/<int:user_id>/delete", methods=["POST"])
@admin_required
def remove_user(user_id: int):
    try:
        user = delete_user(current_identity(), user_id)
    except ValidationError as exc:
        flash(exc.message, "danger")
    else:
        flash(f"Deleted account {user.email}", "success")
    return redirect(url_for("admin.dashboard"))
