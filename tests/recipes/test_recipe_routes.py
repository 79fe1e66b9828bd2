import io
import os

import pytest

from extensions import db
from modules.recipes.models import Recipe


def test_my_recipes_requires_login(client):
    resp = client.get("/recipes/")
    assert resp.status_code == 302
    assert "/login?next=" in resp.headers["Location"]


def test_create_recipe_form(app, client, login_as, owner):
    login_as(owner)
    assert client.get("/recipes/new").status_code == 200

    resp = client.post("/recipes/new", data={
        "title": "Shakshuka",
        "instructions": "Simmer tomatoes, poach eggs.",
        "ingredient_name": ["Tomatoes", "", "Eggs"],
        "ingredient_quantity": ["400 g", "", "4"],
    })

    assert resp.status_code == 302
    with app.app_context():
        recipe = Recipe.query.filter_by(title="Shakshuka").one()
        assert recipe.owner_id == owner.id
        assert [(i.name, i.position) for i in recipe.ingredients] == [("Tomatoes", 1), ("Eggs", 2)]
    assert resp.headers["Location"].endswith(f"/recipes/{recipe.id}")


def test_invalid_form_is_rerendered(app, client, login_as, owner):
    login_as(owner)
    resp = client.post("/recipes/new", data={"title": "", "instructions": ""})

    assert resp.status_code == 200
    assert b"Title is required" in resp.data
    with app.app_context():
        assert Recipe.query.count() == 0


def test_list_and_search(client, login_as, owner, make_recipe):
    make_recipe(owner, title="Lemon Tart")
    make_recipe(owner, title="Beef Stew")
    login_as(owner)

    resp = client.get("/recipes/?search=lemon")

    assert resp.status_code == 200
    assert b"Lemon Tart" in resp.data
    assert b"Beef Stew" not in resp.data


def test_detail_of_private_recipe_is_forbidden_to_others(client, login_as, owner, other_user, make_recipe):
    recipe_id = make_recipe(owner)
    login_as(owner)
    assert client.get(f"/recipes/{recipe_id}").status_code == 200

    login_as(other_user)
    assert client.get(f"/recipes/{recipe_id}").status_code == 403
    assert client.get(f"/recipes/{recipe_id}/edit").status_code == 403
    assert client.post(f"/recipes/{recipe_id}/delete").status_code == 403


def test_detail_of_featured_recipe_redirects_others_to_gallery(client, login_as, owner, other_user, contributor,
                                                               make_featured):
    recipe_id = make_featured(owner, contributor)
    login_as(other_user)

    resp = client.get(f"/recipes/{recipe_id}")

    assert resp.status_code == 302
    assert resp.headers["Location"].endswith(f"/featured/{recipe_id}")


def test_unknown_recipe_is_404(client, login_as, owner):
    login_as(owner)
    assert client.get("/recipes/999").status_code == 404


def test_edit_while_under_review_is_refused(app, client, login_as, owner, make_recipe):
    recipe_id = make_recipe(owner)
    login_as(owner)
    client.post(f"/recipes/{recipe_id}/submit")

    resp = client.post(f"/recipes/{recipe_id}/edit", data={"title": "Changed", "instructions": "Changed"},
                       follow_redirects=True)

    assert resp.status_code == 200
    assert b"under review and cannot be edited" in resp.data
    with app.app_context():
        assert db.session.get(Recipe, recipe_id).title == "Pancakes"


def test_edit_and_delete_own_recipe(app, client, login_as, owner, make_recipe):
    recipe_id = make_recipe(owner)
    login_as(owner)

    assert client.get(f"/recipes/{recipe_id}/edit").status_code == 200
    resp = client.post(f"/recipes/{recipe_id}/edit", data={
        "title": "Fluffy Pancakes",
        "instructions": "Whisk whites separately.",
        "ingredient_name": ["Flour"],
        "ingredient_quantity": ["150 g"],
    })
    assert resp.status_code == 302
    with app.app_context():
        recipe = db.session.get(Recipe, recipe_id)
        assert recipe.title == "Fluffy Pancakes"
        assert [i.name for i in recipe.ingredients] == ["Flour"]

    resp = client.post(f"/recipes/{recipe_id}/delete")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/recipes/")
    with app.app_context():
        assert db.session.get(Recipe, recipe_id) is None


def test_duplicate_own_recipe(app, client, login_as, owner, make_recipe):
    recipe_id = make_recipe(owner)
    login_as(owner)

    resp = client.post(f"/recipes/{recipe_id}/copy")

    assert resp.status_code == 302
    with app.app_context():
        clone = Recipe.query.filter_by(original_recipe_id=recipe_id).one()
        assert clone.title == "Pancakes (Copy)"
    assert resp.headers["Location"].endswith(f"/recipes/{clone.id}")


@pytest.fixture()
def upload_dir(app, tmp_path):
    app.config["UPLOAD_FOLDER"] = str(tmp_path)
    return tmp_path


def _photo():
    return (io.BytesIO(b"\x89PNG fake image bytes"), "dinner.png")


def test_uploaded_photo_is_stored_and_served(app, client, login_as, owner, upload_dir):
    login_as(owner)

    resp = client.post("/recipes/new", data={
        "title": "Roast Chicken", "instructions": "Roast for 90 minutes.", "image": _photo(),
    }, content_type="multipart/form-data")

    assert resp.status_code == 302
    files = os.listdir(upload_dir)
    assert len(files) == 1
    with app.app_context():
        recipe = Recipe.query.filter_by(title="Roast Chicken").one()
        assert recipe.image_url == f"/uploads/{files[0]}"
    resp = client.get(f"/uploads/{files[0]}")
    assert resp.status_code == 200
    assert resp.data == b"\x89PNG fake image bytes"


def test_rejected_new_form_leaves_no_upload(client, login_as, owner, upload_dir):
    login_as(owner)

    resp = client.post("/recipes/new", data={"title": "", "instructions": "", "image": _photo()},
                       content_type="multipart/form-data")

    assert resp.status_code == 200
    assert os.listdir(upload_dir) == []


def test_unknown_category_leaves_no_upload(client, login_as, owner, upload_dir):
    login_as(owner)

    resp = client.post("/recipes/new", data={
        "title": "Stew", "instructions": "Simmer", "category_ids": "999", "image": _photo(),
    }, content_type="multipart/form-data")

    assert resp.status_code == 200
    assert b"Unknown category selected" in resp.data
    assert os.listdir(upload_dir) == []


def test_edit_of_locked_recipe_leaves_no_upload(app, client, login_as, owner, make_recipe, upload_dir):
    recipe_id = make_recipe(owner)
    login_as(owner)
    client.post(f"/recipes/{recipe_id}/submit")

    resp = client.post(f"/recipes/{recipe_id}/edit", data={
        "title": "Changed", "instructions": "Changed", "image": _photo(),
    }, content_type="multipart/form-data")

    assert resp.status_code == 302
    assert os.listdir(upload_dir) == []
    with app.app_context():
        assert db.session.get(Recipe, recipe_id).image_url is None
