import logging
import os
from contextlib import contextmanager
from typing import Optional
from uuid import uuid4

from flask import flash
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.utils import secure_filename

from errors import RecipeAppError, StorageError
from extensions import db

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif'}


def allowed_file(filename):
    """Check if the file has an allowed extension."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def handle_file_upload(file, upload_folder):
    """Save an uploaded image under a unique name and return its path, or None."""
    if file and allowed_file(file.filename):
        filename = f"{uuid4().hex[:8]}_{secure_filename(file.filename)}"
        os.makedirs(upload_folder, exist_ok=True)
        filepath = os.path.join(upload_folder, filename)
        file.save(filepath)
        return filepath
    flash('Invalid file format. Allowed: png, jpg, jpeg, gif', 'warning')
    return None


def discard_upload(path):
    """Remove a saved upload whose form was rejected."""
    if path and os.path.exists(path):
        os.remove(path)


@contextmanager
def atomic(action: str, on_conflict: Optional[RecipeAppError] = None):
    """
    Run a block of writes as one transaction on ``db.session``.

    Commits on success. On any failure the session is rolled back:
    - domain errors raised inside the block propagate unchanged,
    - an IntegrityError becomes ``on_conflict`` when one is given,
    - any other database error is logged and re-raised as StorageError,
    - anything else propagates unchanged.
    """
    try:
        yield db.session
        db.session.commit()
    except RecipeAppError:
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        if on_conflict is not None:
            logger.info("Conflict while %s: %s", action, exc.orig)
            raise on_conflict from exc
        logger.exception("Integrity error while %s", action)
        raise StorageError() from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error while %s", action)
        raise StorageError() from exc
    except Exception:
        db.session.rollback()
        raise


def parse_optional_int(value, field: str) -> Optional[int]:
    """'' or None -> None; otherwise a non-negative int or ValueError naming the field."""
    if value is None or str(value).strip() == '':
        return None
    try:
        number = int(str(value).strip())
    except ValueError:
        raise ValueError(f"{field} must be a whole number") from None
    if number < 0:
        raise ValueError(f"{field} cannot be negative")
    return number


def is_safe_redirect(target: Optional[str]) -> bool:
    """Only allow local absolute paths as post-login destinations."""
    return bool(target) and target.startswith('/') and not target.startswith('//')
