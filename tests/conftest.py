# tests/conftest.py
import os
import sys

import pytest

# so that "from app import create_app" works when running from the repo root
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from app import create_app
from config import TestConfig
from extensions import db
from models import create_user
from modules.recipes.models import create_recipe
from modules.submissions.models import approve_submission, submit_recipe
from permissions import Identity, Role

PASSWORD = "password123"


@pytest.fixture()
def app():
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def ctx(app):
    """Run the test body inside an application context (store-level tests)."""
    with app.app_context():
        yield


@pytest.fixture()
def client(app):
    return app.test_client()


def _make_user(app, email, role, first_name="Test"):
    with app.app_context():
        user = create_user(email, PASSWORD, first_name, "User", role)
        return Identity.from_user(user)


@pytest.fixture()
def owner(app):
    return _make_user(app, "owner@example.com", Role.USER, "Olive")


@pytest.fixture()
def other_user(app):
    return _make_user(app, "other@example.com", Role.USER, "Oscar")


@pytest.fixture()
def contributor(app):
    return _make_user(app, "contributor@example.com", Role.CONTRIBUTOR, "Cora")


@pytest.fixture()
def admin(app):
    return _make_user(app, "admin@example.com", Role.ADMIN, "Ada")


@pytest.fixture()
def make_recipe(app):
    """make_recipe(identity, title=..., ingredients=[(name, qty), ...]) -> recipe id"""

    def _make(actor, title="Pancakes", ingredients=(("Flour", "200 g"), ("Milk", "300 ml"), ("Egg", "2")),
              category_ids=(), **fields):
        data = {"title": title, "instructions": "Mix everything and fry.", **fields}
        with app.app_context():
            return create_recipe(actor, data, ingredients, category_ids).id

    return _make


@pytest.fixture()
def make_featured(app, make_recipe):
    """Create a recipe for ``actor`` and push it through submit + approve."""

    def _make(actor, reviewer, title="Featured Pancakes", **kwargs):
        recipe_id = make_recipe(actor, title=title, **kwargs)
        with app.app_context():
            submission = submit_recipe(actor, recipe_id)
            approve_submission(reviewer, submission.id, "Looks great")
        return recipe_id

    return _make


def _authenticate(client, user_id):
    with client.session_transaction() as session:
        session["_user_id"] = str(user_id)
        session["_fresh"] = True


@pytest.fixture()
def login_as(client):
    """login_as(identity) switches the test client's session to that user."""

    def _login(identity):
        _authenticate(client, identity.id)

    return _login
