"""
Recipe store: recipes, their ordered ingredient lists and category links.

Every mutating operation takes the acting ``Identity`` and checks ownership
itself. Multi-row writes (create, update, copy) run inside one transaction
via ``utils.atomic``: if an ingredient or category row fails, the recipe row
is rolled back with it.

Reads swallow database errors (logged) and return None / [].
"""

import enum
import logging
from datetime import datetime
from typing import Iterable, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import validates

from errors import AuthorizationError, EditForbidden, NotFound, ValidationError
from extensions import db
from models import enum_values
from modules.categories.models import set_recipe_categories
from permissions import Identity
from utils import atomic, parse_optional_int

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (Copy)"


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


recipe_categories = db.Table(
    "recipe_categories",
    db.Column("recipe_id", db.Integer, db.ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True),
    db.Column("category_id", db.Integer, db.ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class Recipe(db.Model):
    """A recipe owned by exactly one user."""

    __tablename__ = "recipes"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    instructions = db.Column(db.Text, nullable=False)
    prep_time = db.Column(db.Integer)     # minutes
    cook_time = db.Column(db.Integer)     # minutes
    servings = db.Column(db.Integer)
    difficulty = db.Column(
        db.Enum(Difficulty, name="recipe_difficulty", native_enum=False, values_callable=enum_values, validate_strings=True)
    )
    image_url = db.Column(db.String(500))

    owner_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    original_recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id", ondelete="SET NULL"))

    is_featured = db.Column(db.Boolean, nullable=False, default=False)
    featured_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = db.relationship("User", back_populates="recipes", foreign_keys=[owner_id])
    original = db.relationship("Recipe", remote_side=[id], back_populates="copies")
    copies = db.relationship("Recipe", back_populates="original")
    ingredients = db.relationship(
        "Ingredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="Ingredient.position",
    )
    categories = db.relationship(
        "Category",
        secondary=recipe_categories,
        back_populates="recipes",
        order_by="Category.name",
    )
    submissions = db.relationship(
        "Submission",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="Submission.id",
    )

    @validates("owner_id")
    def _owner_is_immutable(self, key, value):
        if self.owner_id is not None and value != self.owner_id:
            raise ValueError("Recipe owner cannot be changed")
        return value

    @property
    def total_time(self) -> Optional[int]:
        if self.prep_time is None and self.cook_time is None:
            return None
        return (self.prep_time or 0) + (self.cook_time or 0)

    @property
    def active_submission(self):
        return next((s for s in self.submissions if s.is_active), None)

    @property
    def latest_submission(self):
        return self.submissions[-1] if self.submissions else None

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Recipe {self.id}: {self.title}>"


class Ingredient(db.Model):
    __tablename__ = "ingredients"

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.String(100), nullable=False, default="")
    position = db.Column(db.Integer, nullable=False)   # 1-based

    recipe = db.relationship("Recipe", back_populates="ingredients")


# ---------- Input cleaning ----------

def clean_recipe_data(data: Mapping) -> dict:
    """
    Validate raw form/dict input and return column values.
    All problems are reported together in a single ValidationError.
    """
    errors = []
    title = (data.get("title") or "").strip()
    instructions = (data.get("instructions") or "").strip()
    if not title:
        errors.append("Title is required")
    if not instructions:
        errors.append("Instructions are required")

    difficulty = (data.get("difficulty") or "").strip().lower() or None
    if difficulty is not None:
        try:
            difficulty = Difficulty(difficulty)
        except ValueError:
            errors.append("Difficulty must be easy, medium or hard")

    numbers = {}
    for field, label in (("prep_time", "Prep time"), ("cook_time", "Cook time"), ("servings", "Servings")):
        try:
            numbers[field] = parse_optional_int(data.get(field), label)
        except ValueError as exc:
            errors.append(str(exc))

    if errors:
        raise ValidationError(", ".join(errors))

    return {
        "title": title,
        "description": (data.get("description") or "").strip() or None,
        "instructions": instructions,
        "difficulty": difficulty,
        "image_url": (data.get("image_url") or "").strip() or None,
        **numbers,
    }


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def build_ingredients(rows: Iterable) -> List[Ingredient]:
    """
    Turn (name, quantity) pairs or {"name", "quantity"} mappings into
    Ingredient rows numbered from 1 in the given order. Blank names are skipped.
    """
    items = []
    for row in rows or ():
        if isinstance(row, Mapping):
            name, quantity = row.get("name"), row.get("quantity")
        else:
            try:
                name, quantity = row
            except (TypeError, ValueError):
                raise ValidationError("Each ingredient needs a name and a quantity") from None
        name = _text(name)
        if not name:
            continue
        items.append(Ingredient(name=name, quantity=_text(quantity), position=len(items) + 1))
    return items


# ---------- Reads ----------

def get_recipe(recipe_id: int) -> Optional[Recipe]:
    try:
        return db.session.get(Recipe, recipe_id)
    except SQLAlchemyError:
        logger.exception("Error getting recipe %s", recipe_id)
        return None


def require_recipe(recipe_id: int) -> Recipe:
    recipe = db.session.get(Recipe, recipe_id)
    if recipe is None:
        raise NotFound("Recipe not found")
    return recipe


def user_owns_recipe(user_id: int, recipe_id: int) -> bool:
    try:
        return db.session.query(
            Recipe.query.filter_by(id=recipe_id, owner_id=user_id).exists()
        ).scalar()
    except SQLAlchemyError:
        logger.exception("Error checking ownership of recipe %s", recipe_id)
        return False


def list_recipes_by_owner(owner_id: int) -> List[Recipe]:
    try:
        return (Recipe.query
                .filter_by(owner_id=owner_id)
                .order_by(Recipe.created_at.desc(), Recipe.id.desc())
                .all())
    except SQLAlchemyError:
        logger.exception("Error listing recipes of user %s", owner_id)
        return []


def search_user_recipes(owner_id: int, term: str) -> List[Recipe]:
    try:
        return (Recipe.query
                .filter(Recipe.owner_id == owner_id, Recipe.title.ilike(f"%{term}%"))
                .order_by(Recipe.created_at.desc(), Recipe.id.desc())
                .all())
    except SQLAlchemyError:
        logger.exception("Error searching recipes of user %s", owner_id)
        return []


# ---------- Guards ----------

def require_owned_recipe(actor: Identity, recipe_id: int) -> Recipe:
    recipe = require_recipe(recipe_id)
    if recipe.owner_id != actor.id:
        raise AuthorizationError("You can only change your own recipes")
    return recipe


def ensure_editable(recipe: Recipe) -> None:
    """Featured recipes and recipes with an active submission are read-only."""
    from modules.submissions.models import is_recipe_featured, is_recipe_submitted

    if is_recipe_featured(recipe.id):
        raise EditForbidden("Featured recipes cannot be edited")
    if is_recipe_submitted(recipe.id):
        raise EditForbidden("This recipe is under review and cannot be edited")


# ---------- Writes ----------

def create_recipe(actor: Identity, data: Mapping, ingredients: Iterable = (),
                  category_ids: Iterable[int] = ()) -> Recipe:
    fields = clean_recipe_data(data)
    recipe = Recipe(owner_id=actor.id, **fields)
    with atomic("creating recipe"):
        recipe.ingredients = build_ingredients(ingredients)
        set_recipe_categories(recipe, category_ids)
        db.session.add(recipe)
    logger.info("User %s created recipe %s", actor.id, recipe.id)
    return recipe


def update_recipe(actor: Identity, recipe_id: int, data: Mapping, ingredients: Iterable = (),
                  category_ids: Iterable[int] = ()) -> Recipe:
    """Replace the recipe fields, ingredient list and category set."""
    recipe = require_owned_recipe(actor, recipe_id)
    ensure_editable(recipe)
    fields = clean_recipe_data(data)
    if fields["image_url"] is None:
        fields["image_url"] = recipe.image_url

    with atomic("updating recipe"):
        for key, value in fields.items():
            setattr(recipe, key, value)
        recipe.ingredients = build_ingredients(ingredients)
        set_recipe_categories(recipe, category_ids)
    logger.info("User %s updated recipe %s", actor.id, recipe.id)
    return recipe


def delete_recipe(actor: Identity, recipe_id: int) -> Recipe:
    """Owner-only delete. Ingredients, category links and submissions go with it."""
    recipe = require_owned_recipe(actor, recipe_id)
    with atomic("deleting recipe"):
        db.session.delete(recipe)
    logger.info("User %s deleted recipe %s", actor.id, recipe_id)
    return recipe


def copy_recipe(actor: Identity, recipe_id: int) -> Recipe:
    """
    Duplicate a recipe into the actor's collection.

    The source must be the actor's own recipe or a featured one. The copy
    keeps ingredient order, links back through ``original_recipe_id`` and
    starts unfeatured.
    """
    source = require_recipe(recipe_id)
    if source.owner_id != actor.id and not source.is_featured:
        raise AuthorizationError("You can only copy your own or featured recipes")

    clone = Recipe(
        title=source.title + COPY_SUFFIX,
        description=source.description,
        instructions=source.instructions,
        prep_time=source.prep_time,
        cook_time=source.cook_time,
        servings=source.servings,
        difficulty=source.difficulty,
        image_url=source.image_url,
        owner_id=actor.id,
        original_recipe_id=source.id,
    )
    with atomic("copying recipe"):
        clone.ingredients = [
            Ingredient(name=i.name, quantity=i.quantity, position=i.position)
            for i in source.ingredients
        ]
        clone.categories = list(source.categories)
        db.session.add(clone)
    logger.info("User %s copied recipe %s into %s", actor.id, source.id, clone.id)
    return clone


# ---------- Featured flag (used by the submission workflow and the gallery) ----------

def mark_featured(recipe: Recipe, when: Optional[datetime] = None) -> None:
    recipe.is_featured = True
    recipe.featured_at = when or datetime.utcnow()


def clear_featured(recipe: Recipe) -> None:
    recipe.is_featured = False
    recipe.featured_at = None
