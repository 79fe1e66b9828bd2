import pytest
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import AuthorizationError, DuplicateSubmission, EditForbidden, MissingReason, NotFound, StorageError, ValidationError
from extensions import db
from modules.recipes.models import Recipe, update_recipe
from modules.submissions import models as submission_models
from modules.submissions.models import (
    Submission,
    SubmissionStatus,
    approve_submission,
    is_recipe_submitted,
    list_active_submissions,
    list_user_submissions,
    open_for_review,
    reject_submission,
    submit_recipe,
)


@pytest.fixture()
def recipe_id(make_recipe, owner):
    return make_recipe(owner)


def _reload(model, pk):
    db.session.expire_all()
    return db.session.get(model, pk)


# ---------- submit ----------

def test_submit_creates_pending_submission(ctx, owner, recipe_id):
    submission = submit_recipe(owner, recipe_id)

    assert submission.status == SubmissionStatus.PENDING
    assert submission.submitted_by == owner.id
    assert submission.submitted_at is not None
    assert submission.reviewed_by is None
    assert is_recipe_submitted(recipe_id)


def test_only_owner_can_submit(ctx, other_user, recipe_id):
    with pytest.raises(AuthorizationError):
        submit_recipe(other_user, recipe_id)
    assert Submission.query.count() == 0


def test_submit_unknown_recipe(ctx, owner):
    with pytest.raises(NotFound):
        submit_recipe(owner, 9999)


def test_second_submission_is_refused_while_one_is_active(ctx, owner, contributor, recipe_id):
    first = submit_recipe(owner, recipe_id)
    with pytest.raises(DuplicateSubmission):
        submit_recipe(owner, recipe_id)

    open_for_review(contributor, first.id)
    with pytest.raises(DuplicateSubmission):
        submit_recipe(owner, recipe_id)

    assert Submission.query.filter_by(recipe_id=recipe_id).count() == 1


def test_database_refuses_second_active_submission(ctx, owner, recipe_id, monkeypatch):
    submit_recipe(owner, recipe_id)
    # skip the application-level check so only the partial unique index stands in the way
    monkeypatch.setattr(submission_models, "is_recipe_submitted", lambda _rid: False)

    with pytest.raises(DuplicateSubmission):
        submit_recipe(owner, recipe_id)
    assert Submission.query.filter_by(recipe_id=recipe_id).count() == 1


def test_partial_index_only_covers_active_rows(ctx, owner, recipe_id):
    db.session.add(Submission(recipe_id=recipe_id, submitted_by=owner.id, status=SubmissionStatus.REJECTED))
    db.session.add(Submission(recipe_id=recipe_id, submitted_by=owner.id, status=SubmissionStatus.REJECTED))
    db.session.add(Submission(recipe_id=recipe_id, submitted_by=owner.id, status=SubmissionStatus.PENDING))
    db.session.commit()

    db.session.add(Submission(recipe_id=recipe_id, submitted_by=owner.id, status=SubmissionStatus.UNDER_REVIEW))
    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()


def test_rejected_recipe_can_be_resubmitted(ctx, owner, contributor, recipe_id):
    first = submit_recipe(owner, recipe_id)
    reject_submission(contributor, first.id, "Needs more detail")

    second = submit_recipe(owner, recipe_id)

    assert second.id != first.id
    assert second.status == SubmissionStatus.PENDING
    assert [s.id for s in list_user_submissions(owner.id)] == [second.id, first.id]


def test_featured_recipe_cannot_be_resubmitted(ctx, owner, contributor, recipe_id):
    submission = submit_recipe(owner, recipe_id)
    approve_submission(contributor, submission.id)

    with pytest.raises(ValidationError):
        submit_recipe(owner, recipe_id)


# ---------- open for review ----------

def test_open_for_review_claims_pending_submission(ctx, owner, contributor, recipe_id):
    submission = submit_recipe(owner, recipe_id)

    opened = open_for_review(contributor, submission.id)

    assert opened.status == SubmissionStatus.UNDER_REVIEW
    assert opened.reviewed_by == contributor.id
    assert opened.reviewed_at is None


def test_open_for_review_is_idempotent(ctx, owner, contributor, admin, recipe_id):
    submission = submit_recipe(owner, recipe_id)
    open_for_review(contributor, submission.id)

    again = open_for_review(admin, submission.id)

    assert again.status == SubmissionStatus.UNDER_REVIEW
    assert again.reviewed_by == contributor.id


def test_open_for_review_leaves_terminal_submission_alone(ctx, owner, contributor, admin, recipe_id):
    submission = submit_recipe(owner, recipe_id)
    reject_submission(contributor, submission.id, "Too short")

    reopened = open_for_review(admin, submission.id)

    assert reopened.status == SubmissionStatus.REJECTED
    assert reopened.reviewed_by == contributor.id


def test_plain_user_cannot_review(ctx, owner, other_user, recipe_id):
    submission = submit_recipe(owner, recipe_id)
    with pytest.raises(AuthorizationError):
        open_for_review(other_user, submission.id)
    with pytest.raises(AuthorizationError):
        approve_submission(other_user, submission.id)
    with pytest.raises(AuthorizationError):
        reject_submission(other_user, submission.id, "no")
    assert _reload(Submission, submission.id).status == SubmissionStatus.PENDING


# ---------- approve ----------

def test_approve_features_recipe(ctx, owner, contributor, recipe_id):
    submission = submit_recipe(owner, recipe_id)
    open_for_review(contributor, submission.id)

    approved = approve_submission(contributor, submission.id, "  Lovely  ")

    recipe = _reload(Recipe, recipe_id)
    assert approved.status == SubmissionStatus.APPROVED
    assert approved.reviewed_by == contributor.id
    assert approved.reviewed_at is not None
    assert approved.review_notes == "Lovely"
    assert recipe.is_featured is True
    assert recipe.featured_at == approved.reviewed_at
    assert not is_recipe_submitted(recipe_id)


def test_approve_straight_from_pending(ctx, owner, admin, recipe_id):
    submission = submit_recipe(owner, recipe_id)

    approve_submission(admin, submission.id)

    assert _reload(Submission, submission.id).review_notes is None
    assert _reload(Recipe, recipe_id).is_featured


def test_approve_failure_leaves_nothing_half_done(ctx, owner, contributor, recipe_id, monkeypatch):
    submission = submit_recipe(owner, recipe_id)
    open_for_review(contributor, submission.id)

    def broken_mark_featured(recipe, when=None):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(submission_models, "mark_featured", broken_mark_featured)

    with pytest.raises(StorageError):
        approve_submission(contributor, submission.id, "ok")

    stored = _reload(Submission, submission.id)
    assert stored.status == SubmissionStatus.UNDER_REVIEW
    assert stored.reviewed_at is None
    assert stored.review_notes is None
    recipe = _reload(Recipe, recipe_id)
    assert recipe.is_featured is False
    assert recipe.featured_at is None


def test_terminal_submission_cannot_change(ctx, owner, contributor, recipe_id):
    submission = submit_recipe(owner, recipe_id)
    approve_submission(contributor, submission.id)

    with pytest.raises(ValidationError):
        approve_submission(contributor, submission.id)
    with pytest.raises(ValidationError):
        reject_submission(contributor, submission.id, "changed my mind")

    assert _reload(Submission, submission.id).status == SubmissionStatus.APPROVED


# ---------- reject ----------

@pytest.mark.parametrize("notes", [None, "", "   "])
def test_reject_requires_reason(ctx, owner, contributor, recipe_id, notes):
    submission = submit_recipe(owner, recipe_id)
    open_for_review(contributor, submission.id)

    with pytest.raises(MissingReason):
        reject_submission(contributor, submission.id, notes)

    stored = _reload(Submission, submission.id)
    assert stored.status == SubmissionStatus.UNDER_REVIEW
    assert stored.reviewed_at is None


def test_reject_keeps_recipe_unfeatured_and_editable(ctx, owner, contributor, recipe_id):
    submission = submit_recipe(owner, recipe_id)

    rejected = reject_submission(contributor, submission.id, "  Please add cooking times ")

    assert rejected.status == SubmissionStatus.REJECTED
    assert rejected.review_notes == "Please add cooking times"
    assert rejected.reviewed_by == contributor.id
    assert not _reload(Recipe, recipe_id).is_featured
    updated = update_recipe(owner, recipe_id, {"title": "Pancakes v2", "instructions": "Mix, rest, fry."})
    assert updated.title == "Pancakes v2"


# ---------- editability while in the workflow ----------

def test_recipe_is_read_only_while_active_or_featured(ctx, owner, contributor, recipe_id):
    data = {"title": "Changed", "instructions": "Changed"}
    submission = submit_recipe(owner, recipe_id)
    with pytest.raises(EditForbidden):
        update_recipe(owner, recipe_id, data)

    open_for_review(contributor, submission.id)
    with pytest.raises(EditForbidden):
        update_recipe(owner, recipe_id, data)

    approve_submission(contributor, submission.id)
    with pytest.raises(EditForbidden):
        update_recipe(owner, recipe_id, data)

    assert _reload(Recipe, recipe_id).title == "Pancakes"


# ---------- queue ----------

def test_queue_lists_active_submissions_oldest_first(ctx, owner, contributor, make_recipe):
    ids = [make_recipe(owner, title=f"Recipe {n}") for n in range(3)]
    subs = [submit_recipe(owner, rid) for rid in ids]
    open_for_review(contributor, subs[1].id)
    reject_submission(contributor, subs[2].id, "No")

    queue = list_active_submissions()

    assert [s.id for s in queue] == [subs[0].id, subs[1].id]
