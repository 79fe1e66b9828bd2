"""Personal recipes module package."""

from flask import Blueprint

bp = Blueprint("recipes", __name__, url_prefix="/recipes")

from . import models  # noqa: E402  pylint: disable=wrong-import-position
from . import routes  # noqa: E402  pylint: disable=wrong-import-position

__all__ = ["bp", "models", "routes"]
