"""HTTP routes for a user's own recipe collection."""

import os

from flask import abort, current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required

from errors import ValidationError
from modules.categories.models import list_categories
from permissions import current_identity
from utils import discard_upload, handle_file_upload

from . import bp
from .models import (
    clean_recipe_data,
    copy_recipe,
    create_recipe,
    delete_recipe,
    ensure_editable,
    list_recipes_by_owner,
    require_owned_recipe,
    require_recipe,
    search_user_recipes,
    update_recipe,
)


# ---------- Form helpers ----------
def _form_ingredients():
    names = request.form.getlist("ingredient_name")
    quantities = request.form.getlist("ingredient_quantity")
    quantities += [""] * (len(names) - len(quantities))
    return list(zip(names, quantities))


def _save_image(data):
    """Store an uploaded photo and point ``image_url`` at it. Returns the file path on disk, or None."""
    photo = request.files.get("image")
    if not (photo and photo.filename):
        return None
    path = handle_file_upload(photo, current_app.config["UPLOAD_FOLDER"])
    if path:
        data["image_url"] = url_for("ui.uploaded_file", filename=os.path.basename(path))
    return path


def _render_form(recipe=None, status=200):
    return render_template(
        "recipes/form.html",
        recipe=recipe,
        form=request.form,
        categories=list_categories(),
    ), status


# ---------- Pages ----------
@bp.route("/")
@login_required
def my_recipes():
    term = request.args.get("search", "").strip()
    if term:
        recipes = search_user_recipes(current_user.id, term)
    else:
        recipes = list_recipes_by_owner(current_user.id)
    return render_template("recipes/list.html", recipes=recipes, search=term)


@bp.route("/new", methods=["GET", "POST"])
@login_required
def new_recipe():
    if request.method == "POST":
        data = request.form.to_dict()
        saved = None
        try:
            clean_recipe_data(data)
            saved = _save_image(data)
            recipe = create_recipe(
                current_identity(),
                data,
                _form_ingredients(),
                request.form.getlist("category_ids"),
            )
        except ValidationError as exc:
            discard_upload(saved)
            flash(exc.message, "danger")
            return _render_form()
        flash("Recipe created.", "success")
        return redirect(url_for("recipes.recipe_detail", recipe_id=recipe.id))

    return _render_form()


@bp.route("/<int:recipe_id>")
@login_required
def recipe_detail(recipe_id: int):
    recipe = require_recipe(recipe_id)
    if recipe.owner_id != current_user.id:
        if recipe.is_featured:
            return redirect(url_for("featured.featured_detail", recipe_id=recipe.id))
        abort(403)
    return render_template(
        "recipes/detail.html",
        recipe=recipe,
        submission=recipe.latest_submission,
        editable=not (recipe.is_featured or recipe.active_submission),
    )


@bp.route("/<int:recipe_id>/edit", methods=["GET", "POST"])
@login_required
def edit_recipe(recipe_id: int):
    actor = current_identity()
    recipe = require_owned_recipe(actor, recipe_id)

    if request.method == "POST":
        data = request.form.to_dict()
        saved = None
        try:
            ensure_editable(recipe)
            clean_recipe_data(data)
            saved = _save_image(data)
            update_recipe(
                actor,
                recipe_id,
                data,
                _form_ingredients(),
                request.form.getlist("category_ids"),
            )
        except ValidationError as exc:
            discard_upload(saved)
            flash(exc.message, "danger")
            if recipe.is_featured or recipe.active_submission:
                return redirect(url_for("recipes.recipe_detail", recipe_id=recipe_id))
            return _render_form(recipe)
        flash("Recipe updated.", "success")
        return redirect(url_for("recipes.recipe_detail", recipe_id=recipe_id))

    try:
        ensure_editable(recipe)
    except ValidationError as exc:
        flash(exc.message, "warning")
        return redirect(url_for("recipes.recipe_detail", recipe_id=recipe_id))
    return _render_form(recipe)


@bp.route("/<int:recipe_id>/delete", methods=["POST"])
@login_required
def delete(recipe_id: int):
    recipe = delete_recipe(current_identity(), recipe_id)
    flash(f'Recipe "{recipe.title}" deleted.', "success")
    return redirect(url_for("recipes.my_recipes"))


@bp.route("/<int:recipe_id>/copy", methods=["POST"])
@login_required
def copy(recipe_id: int):
    clone = copy_recipe(current_identity(), recipe_id)
    flash("Recipe copied to your collection!", "success")
    return redirect(url_for("recipes.recipe_detail", recipe_id=clone.id))
