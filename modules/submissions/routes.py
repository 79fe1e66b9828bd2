"""Routes for submitting recipes and for the contributor review queue."""

from flask import flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required

from errors import MissingReason, ValidationError
from permissions import contributor_required, current_identity

from . import bp
from .models import (
    approve_submission,
    list_active_submissions,
    list_user_submissions,
    open_for_review,
    reject_submission,
    submit_recipe,
)


@bp.route("/recipes/<int:recipe_id>/submit", methods=["POST"])
@login_required
def submit(recipe_id: int):
    try:
        submit_recipe(current_identity(), recipe_id)
    except ValidationError as exc:
        flash(exc.message, "danger")
    else:
        flash("Recipe submitted for review! You will be notified once it has been reviewed.", "success")
    return redirect(url_for("recipes.recipe_detail", recipe_id=recipe_id))


@bp.route("/submissions/mine")
@login_required
def my_submissions():
    return render_template("submissions/mine.html", submissions=list_user_submissions(current_user.id))


# ---------- Contributor queue ----------
@bp.route("/contributor/submissions")
@contributor_required
def queue():
    return render_template("submissions/queue.html", submissions=list_active_submissions())


@bp.route("/contributor/submissions/<int:submission_id>")
@contributor_required
def review(submission_id: int):
    # Opening the page claims a pending submission; reopening it changes nothing.
    submission = open_for_review(current_identity(), submission_id)
    return render_template("submissions/review.html", submission=submission, recipe=submission.recipe)


@bp.route("/contributor/submissions/<int:submission_id>/approve", methods=["POST"])
@contributor_required
def approve(submission_id: int):
    try:
        approve_submission(current_identity(), submission_id, request.form.get("notes"))
    except ValidationError as exc:
        flash(exc.message, "danger")
    else:
        flash("Recipe approved and added to Featured Recipes!", "success")
    return redirect(url_for("submissions.queue"))


@bp.route("/contributor/submissions/<int:submission_id>/reject", methods=["POST"])
@contributor_required
def reject(submission_id: int):
    try:
        reject_submission(current_identity(), submission_id, request.form.get("notes"))
    except MissingReason as exc:
        flash(exc.message, "danger")
        return redirect(url_for("submissions.review", submission_id=submission_id))
    except ValidationError as exc:
        flash(exc.message, "danger")
    else:
        flash("Recipe rejected. The owner can see the reason in their submissions.", "success")
    return redirect(url_for("submissions.queue"))
