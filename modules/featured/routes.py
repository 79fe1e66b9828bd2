"""Public featured gallery plus the curation actions on it."""

from flask import flash, redirect, render_template, request, url_for
from flask_login import login_required

from modules.categories.models import list_categories
from modules.recipes.models import copy_recipe
from permissions import contributor_required, current_identity

from . import bp
from .models import (
    can_delete_featured,
    delete_featured_recipe,
    list_featured_recipes,
    require_featured_recipe,
    search_featured_recipes,
    unfeature_recipe,
)


@bp.route("/")
def featured_list():
    term = request.args.get("search", "").strip()
    category_id = request.args.get("category", type=int)
    if term:
        recipes = search_featured_recipes(term)
    else:
        recipes = list_featured_recipes(category_id=category_id)
    return render_template(
        "featured/list.html",
        recipes=recipes,
        search=term,
        categories=list_categories(),
        category_id=category_id,
    )


@bp.route("/<int:recipe_id>")
def featured_detail(recipe_id: int):
    recipe = require_featured_recipe(recipe_id)
    actor = current_identity()
    return render_template(
        "featured/detail.html",
        recipe=recipe,
        is_owner=actor is not None and recipe.owner_id == actor.id,
        can_delete=can_delete_featured(actor, recipe),
    )


@bp.route("/<int:recipe_id>/copy", methods=["POST"])
@login_required
def copy(recipe_id: int):
    actor = current_identity()
    recipe = require_featured_recipe(recipe_id)
    if recipe.owner_id == actor.id:
        flash("You already own this recipe", "warning")
        return redirect(url_for("featured.featured_detail", recipe_id=recipe_id))

    clone = copy_recipe(actor, recipe_id)
    flash("Recipe copied to your collection!", "success")
    return redirect(url_for("recipes.recipe_detail", recipe_id=clone.id))


@bp.route("/<int:recipe_id>/unfeature", methods=["POST"])
@contributor_required
def unfeature(recipe_id: int):
    unfeature_recipe(current_identity(), recipe_id)
    flash("Recipe removed from featured list", "success")
    return redirect(url_for("featured.featured_list"))


@bp.route("/<int:recipe_id>/delete", methods=["POST"])
@login_required
def delete(recipe_id: int):
    delete_featured_recipe(current_identity(), recipe_id)
    flash("Recipe deleted successfully", "success")
    return redirect(url_for("featured.featured_list"))
