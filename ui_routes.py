# ui_routes.py: home page and shared UI bits
from flask import Blueprint, current_app, render_template, send_from_directory
from flask_login import current_user

from modules.featured.models import count_featured_recipes, list_featured_recipes
from modules.recipes.models import list_recipes_by_owner
from modules.submissions.models import list_active_submissions
from permissions import can_review

ui = Blueprint("ui", __name__)

HOME_FEATURED_LIMIT = 6


@ui.route("/")
def home():
    my_recipes_count = 0
    queue_size = 0
    if current_user.is_authenticated:
        my_recipes_count = len(list_recipes_by_owner(current_user.id))
        if can_review():
            queue_size = len(list_active_submissions())

    return render_template(
        "home.html",
        featured=list_featured_recipes(limit=HOME_FEATURED_LIMIT),
        featured_count=count_featured_recipes(),
        my_recipes_count=my_recipes_count,
        queue_size=queue_size,
    )


@ui.route("/uploads/<path:filename>")
def uploaded_file(filename):
    """Recipe photos, served from UPLOAD_FOLDER wherever it lives."""
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)
