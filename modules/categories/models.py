"""Category store: the admin-managed tag vocabulary attached to recipes."""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from errors import AuthorizationError, NotFound, ValidationError
from extensions import db
from permissions import Identity
from utils import atomic

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    ("Breakfast", "Morning meals and brunch recipes"),
    ("Lunch", "Midday meals and light dishes"),
    ("Dinner", "Evening meals and hearty dishes"),
    ("Desserts", "Sweet treats and baked goods"),
    ("Appetizers", "Starters and small bites"),
    ("Soups & Stews", "Warm and comforting soups"),
    ("Salads", "Fresh and healthy salads"),
    ("Beverages", "Drinks and smoothies"),
    ("Snacks", "Quick bites and finger foods"),
    ("Main Dishes", "Primary course recipes"),
]


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    recipes = db.relationship("Recipe", secondary="recipe_categories", back_populates="categories")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Category {self.name}>"


def list_categories() -> List[Category]:
    try:
        return Category.query.order_by(Category.name.asc()).all()
    except SQLAlchemyError:
        logger.exception("Error listing categories")
        return []


def get_category(category_id: int) -> Optional[Category]:
    try:
        return db.session.get(Category, category_id)
    except SQLAlchemyError:
        logger.exception("Error getting category %s", category_id)
        return None


def list_categories_with_count():
    """[(category, recipe_count), ...] ordered by name."""
    from modules.recipes.models import recipe_categories

    try:
        return (db.session.query(Category, func.count(recipe_categories.c.recipe_id))
                .outerjoin(recipe_categories, recipe_categories.c.category_id == Category.id)
                .group_by(Category.id)
                .order_by(Category.name.asc())
                .all())
    except SQLAlchemyError:
        logger.exception("Error counting recipes per category")
        return []


def _require_admin(actor: Identity) -> None:
    if not actor.is_admin:
        raise AuthorizationError("Admin access required")


def _clean(name: str, description: Optional[str]):
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name is required")
    return name, (description or "").strip() or None


def _duplicate_name():
    return ValidationError("A category with this name already exists")


def create_category(actor: Identity, name: str, description: Optional[str] = None) -> Category:
    _require_admin(actor)
    name, description = _clean(name, description)
    category = Category(name=name, description=description)
    with atomic("creating category", on_conflict=_duplicate_name()):
        db.session.add(category)
    logger.info("Category %r created by admin %s", name, actor.id)
    return category


def update_category(actor: Identity, category_id: int, name: str, description: Optional[str] = None) -> Category:
    _require_admin(actor)
    name, description = _clean(name, description)
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found")
    with atomic("updating category", on_conflict=_duplicate_name()):
        category.name = name
        category.description = description
    return category


def delete_category(actor: Identity, category_id: int) -> Category:
    _require_admin(actor)
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found")
    with atomic("deleting category"):
        db.session.delete(category)
    logger.info("Category %r deleted by admin %s", category.name, actor.id)
    return category


def set_recipe_categories(recipe, category_ids: Iterable) -> None:
    """
    Replace the recipe's category set. Joins the caller's transaction:
    nothing is committed here.
    """
    ids = set()
    for raw in category_ids or ():
        try:
            ids.add(int(raw))
        except (TypeError, ValueError):
            raise ValidationError("Unknown category selected") from None

    categories = Category.query.filter(Category.id.in_(ids)).all() if ids else []
    if len(categories) != len(ids):
        raise ValidationError("Unknown category selected")
    recipe.categories = sorted(categories, key=lambda c: c.name)


def seed_default_categories() -> int:
    """Insert the default vocabulary, skipping names that already exist. Returns the number added."""
    existing = {name for (name,) in db.session.query(Category.name).all()}
    added = 0
    with atomic("seeding categories"):
        for name, description in DEFAULT_CATEGORIES:
            if name not in existing:
                db.session.add(Category(name=name, description=description))
                added += 1
    return added
