"""Admin pages for the category vocabulary."""

from flask import flash, redirect, render_template, request, url_for

from errors import ValidationError
from permissions import admin_required, current_identity

from . import bp
from .models import create_category, delete_category, list_categories_with_count, update_category


@bp.route("/", methods=["GET", "POST"])
@admin_required
def manage():
    if request.method == "POST":
        try:
            category = create_category(current_identity(), request.form.get("name"), request.form.get("description"))
        except ValidationError as exc:
            flash(exc.message, "danger")
        else:
            flash(f'Category "{category.name}" created successfully', "success")
        return redirect(url_for("categories.manage"))

    return render_template("admin/categories.html", rows=list_categories_with_count())


@bp.route("/<int:category_id>/edit", methods=["POST"])
@admin_required
def edit(category_id: int):
    try:
        category = update_category(
            current_identity(), category_id, request.form.get("name"), request.form.get("description")
        )
    except ValidationError as exc:
        flash(exc.message, "danger")
    else:
        flash(f'Category "{category.name}" updated successfully', "success")
    return redirect(url_for("categories.manage"))


@bp.route("/<int:category_id>/delete", methods=["POST"])
@admin_required
def delete(category_id: int):
    category = delete_category(current_identity(), category_id)
    flash(f'Category "{category.name}" deleted successfully', "success")
    return redirect(url_for("categories.manage"))
