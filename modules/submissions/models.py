"""
Submission workflow: the review lifecycle that puts a recipe in the gallery.

    pending --open_for_review--> under_review --approve--> approved
       |                              |
       +------------reject------------+--------reject----> rejected

``approved`` and ``rejected`` are terminal; a terminal submission is never
changed again. A recipe has at most one *active* submission (pending or
under_review) at a time. ``submit_recipe`` checks first to give a friendly
message, and the partial unique index ``uq_submissions_active_recipe`` closes
the race between two concurrent submits.

Approval flips the recipe's featured flag in the same transaction as the
status change: both land or neither does.
"""

import enum
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from errors import AuthorizationError, DuplicateSubmission, MissingReason, NotFound, ValidationError
from extensions import db
from models import enum_values
from modules.recipes.models import Recipe, mark_featured, require_recipe
from permissions import Identity
from utils import atomic

logger = logging.getLogger(__name__)


class SubmissionStatus(str, enum.Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


ACTIVE_STATUSES = (SubmissionStatus.PENDING, SubmissionStatus.UNDER_REVIEW)
TERMINAL_STATUSES = (SubmissionStatus.APPROVED, SubmissionStatus.REJECTED)

_ACTIVE_SQL = text("status IN ('pending', 'under_review')")


class Submission(db.Model):
    """One attempt to get a recipe featured."""

    __tablename__ = "recipe_submissions"

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    submitted_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = db.Column(
        db.Enum(SubmissionStatus, name="submission_status", native_enum=False,
                values_callable=enum_values, validate_strings=True),
        nullable=False,
        default=SubmissionStatus.PENDING,
    )
    reviewed_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    reviewed_at = db.Column(db.DateTime)
    review_notes = db.Column(db.Text)

    recipe = db.relationship("Recipe", back_populates="submissions")
    submitter = db.relationship("User", foreign_keys=[submitted_by])
    reviewer = db.relationship(
        "User",
        foreign_keys=[reviewed_by],
        backref="reviewed_submissions",
    )

    __table_args__ = (
        db.Index(
            "uq_submissions_active_recipe",
            "recipe_id",
            unique=True,
            sqlite_where=_ACTIVE_SQL,
            postgresql_where=_ACTIVE_SQL,
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Submission {self.id} recipe={self.recipe_id} {self.status.value}>"


# ---------- Predicates ----------

def is_recipe_submitted(recipe_id: int) -> bool:
    """True while the recipe has a pending or under_review submission."""
    try:
        return db.session.query(
            Submission.query
            .filter(Submission.recipe_id == recipe_id, Submission.status.in_(ACTIVE_STATUSES))
            .exists()
        ).scalar()
    except SQLAlchemyError:
        logger.exception("Error checking submission status of recipe %s", recipe_id)
        return False


def is_recipe_featured(recipe_id: int) -> bool:
    try:
        return db.session.query(
            Recipe.query.filter_by(id=recipe_id, is_featured=True).exists()
        ).scalar()
    except SQLAlchemyError:
        logger.exception("Error checking whether recipe %s is featured", recipe_id)
        return False


# ---------- Reads ----------

def get_submission(submission_id: int) -> Optional[Submission]:
    try:
        return db.session.get(Submission, submission_id)
    except SQLAlchemyError:
        logger.exception("Error getting submission %s", submission_id)
        return None


def require_submission(submission_id: int) -> Submission:
    submission = db.session.get(Submission, submission_id)
    if submission is None:
        raise NotFound("Submission not found")
    return submission


def list_active_submissions() -> List[Submission]:
    """Review queue, oldest first."""
    try:
        return (Submission.query
                .filter(Submission.status.in_(ACTIVE_STATUSES))
                .order_by(Submission.submitted_at.asc(), Submission.id.asc())
                .all())
    except SQLAlchemyError:
        logger.exception("Error listing active submissions")
        return []


def list_user_submissions(user_id: int) -> List[Submission]:
    """A user's submission history, newest first."""
    try:
        return (Submission.query
                .filter_by(submitted_by=user_id)
                .order_by(Submission.submitted_at.desc(), Submission.id.desc())
                .all())
    except SQLAlchemyError:
        logger.exception("Error listing submissions of user %s", user_id)
        return []


def latest_submission_for_recipe(recipe_id: int) -> Optional[Submission]:
    try:
        return (Submission.query
                .filter_by(recipe_id=recipe_id)
                .order_by(Submission.submitted_at.desc(), Submission.id.desc())
                .first())
    except SQLAlchemyError:
        logger.exception("Error getting latest submission of recipe %s", recipe_id)
        return None


# ---------- Transitions ----------

def _require_reviewer(actor: Identity) -> None:
    if not actor.is_reviewer:
        raise AuthorizationError("Contributor or admin access required")


def _require_active(submission: Submission) -> None:
    if submission.is_terminal:
        raise ValidationError(f"This submission was already {submission.status.value}")


def submit_recipe(actor: Identity, recipe_id: int) -> Submission:
    """Owner puts a recipe into the review queue as ``pending``."""
    recipe = require_recipe(recipe_id)
    if recipe.owner_id != actor.id:
        raise AuthorizationError("You can only submit your own recipes")
    if recipe.is_featured:
        raise ValidationError("This recipe is already featured")
    if is_recipe_submitted(recipe_id):
        raise DuplicateSubmission()

    submission = Submission(recipe_id=recipe.id, submitted_by=actor.id, status=SubmissionStatus.PENDING)
    with atomic("submitting recipe", on_conflict=DuplicateSubmission()):
        db.session.add(submission)
    logger.info("Recipe %s submitted for review by user %s", recipe_id, actor.id)
    return submission


def open_for_review(actor: Identity, submission_id: int) -> Submission:
    """
    pending -> under_review, recording the reviewer.
    Any other state is returned unchanged, so reopening the review page is safe.
    """
    _require_reviewer(actor)
    submission = require_submission(submission_id)
    if submission.status != SubmissionStatus.PENDING:
        return submission

    with atomic("opening submission for review"):
        updated = (Submission.query
                   .filter_by(id=submission_id, status=SubmissionStatus.PENDING)
                   .update({Submission.status: SubmissionStatus.UNDER_REVIEW, Submission.reviewed_by: actor.id},
                           synchronize_session=False))
    db.session.refresh(submission)
    if updated:
        logger.info("Submission %s opened for review by %s", submission_id, actor.id)
    return submission


def approve_submission(actor: Identity, submission_id: int, notes: Optional[str] = None) -> Submission:
    """Approve and feature the recipe, atomically."""
    _require_reviewer(actor)
    submission = require_submission(submission_id)
    _require_active(submission)

    now = datetime.utcnow()
    with atomic("approving submission"):
        submission.status = SubmissionStatus.APPROVED
        submission.reviewed_by = actor.id
        submission.reviewed_at = now
        submission.review_notes = (notes or "").strip() or None
        mark_featured(submission.recipe, now)
    logger.info("Submission %s approved by %s; recipe %s featured",
                submission_id, actor.id, submission.recipe_id)
    return submission


def reject_submission(actor: Identity, submission_id: int, notes: Optional[str]) -> Submission:
    """Reject with a mandatory reason. The recipe is left as it is."""
    _require_reviewer(actor)
    notes = (notes or "").strip()
    if not notes:
        raise MissingReason()
    submission = require_submission(submission_id)
    _require_active(submission)

    with atomic("rejecting submission"):
        submission.status = SubmissionStatus.REJECTED
        submission.reviewed_by = actor.id
        submission.reviewed_at = datetime.utcnow()
        submission.review_notes = notes
    logger.info("Submission %s rejected by %s", submission_id, actor.id)
    return submission
