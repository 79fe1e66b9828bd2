"""
Featured gallery: the public, read-mostly view over recipes with
``is_featured = True``. No table of its own; recipes enter the gallery
through an approved submission and leave it through ``unfeature_recipe``
or deletion.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from errors import AuthorizationError, NotFound
from extensions import db
from modules.recipes.models import Recipe, clear_featured, recipe_categories
from permissions import Identity
from utils import atomic

logger = logging.getLogger(__name__)


def _featured_query():
    return Recipe.query.filter(Recipe.is_featured.is_(True))


def _newest_first(query):
    return query.order_by(Recipe.featured_at.desc(), Recipe.id.desc())


def list_featured_recipes(category_id: Optional[int] = None, limit: Optional[int] = None) -> List[Recipe]:
    try:
        query = _featured_query()
        if category_id is not None:
            query = (query
                     .join(recipe_categories, recipe_categories.c.recipe_id == Recipe.id)
                     .filter(recipe_categories.c.category_id == category_id))
        query = _newest_first(query)
        if limit:
            query = query.limit(limit)
        return query.all()
    except SQLAlchemyError:
        logger.exception("Error listing featured recipes")
        return []


def search_featured_recipes(term: str) -> List[Recipe]:
    try:
        return _newest_first(_featured_query().filter(Recipe.title.ilike(f"%{term}%"))).all()
    except SQLAlchemyError:
        logger.exception("Error searching featured recipes")
        return []


def get_featured_recipe(recipe_id: int) -> Optional[Recipe]:
    try:
        return _featured_query().filter(Recipe.id == recipe_id).first()
    except SQLAlchemyError:
        logger.exception("Error getting featured recipe %s", recipe_id)
        return None


def count_featured_recipes() -> int:
    try:
        return _featured_query().count()
    except SQLAlchemyError:
        logger.exception("Error counting featured recipes")
        return 0


def require_featured_recipe(recipe_id: int) -> Recipe:
    recipe = _featured_query().filter(Recipe.id == recipe_id).first()
    if recipe is None:
        raise NotFound("Featured recipe not found")
    return recipe


def can_delete_featured(actor: Optional[Identity], recipe: Recipe) -> bool:
    """Owner, or any contributor/admin."""
    return actor is not None and (recipe.owner_id == actor.id or actor.is_reviewer)


def unfeature_recipe(actor: Identity, recipe_id: int) -> Recipe:
    """Take a recipe out of the gallery. Contributor or admin only."""
    if not actor.is_reviewer:
        raise AuthorizationError("Contributor or admin access required")
    recipe = require_featured_recipe(recipe_id)
    with atomic("unfeaturing recipe"):
        clear_featured(recipe)
    logger.info("Recipe %s unfeatured by %s", recipe_id, actor.id)
    return recipe


def delete_featured_recipe(actor: Identity, recipe_id: int) -> Recipe:
    recipe = require_featured_recipe(recipe_id)
    if not can_delete_featured(actor, recipe):
        raise AuthorizationError("Access denied")
    with atomic("deleting featured recipe"):
        db.session.delete(recipe)
    logger.info("Featured recipe %s deleted by %s", recipe_id, actor.id)
    return recipe
