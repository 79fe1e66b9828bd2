import logging
import os

from dotenv import load_dotenv
from flask import Flask, render_template

load_dotenv()

from config import Config  # noqa: E402  (load_dotenv needs to run first)
from errors import AuthorizationError, NotFound, StorageError  # noqa: E402
from extensions import db, login_manager  # noqa: E402  (load_dotenv needs to run first)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def create_app(config_object=Config) -> Flask:
    """Application factory for the recipe workshop."""

    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(level=app.config.get("LOG_LEVEL", "INFO"), format=LOG_FORMAT)

    # init extensions
    db.init_app(app)
    login_manager.init_app(app)
    login_manager.login_view = "auth.login"
    login_manager.login_message = "Please log in to access this page."
    login_manager.login_message_category = "warning"

    # blueprints
    from modules.auth import bp as auth_bp
    from modules.recipes import bp as recipes_bp
    from modules.categories import bp as categories_bp
    from modules.submissions import bp as submissions_bp
    from modules.featured import bp as featured_bp
    from modules.admin import bp as admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(recipes_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(submissions_bp)
    app.register_blueprint(featured_bp)
    app.register_blueprint(admin_bp)

    from ui_routes import ui
    app.register_blueprint(ui)  # home "/"

    # DB
    with app.app_context():
        # models must be imported before create_all()
        import models  # noqa: F401
        from modules.recipes import models as recipe_models  # noqa: F401
        from modules.categories import models as category_models  # noqa: F401
        from modules.submissions import models as submission_models  # noqa: F401

        db.create_all()

    # uploads dir, relative paths are resolved against the app root
    upload_folder = app.config.get("UPLOAD_FOLDER") or os.path.join("static", "uploads")
    if not os.path.isabs(upload_folder):
        upload_folder = os.path.join(app.root_path, upload_folder)
    app.config["UPLOAD_FOLDER"] = upload_folder
    os.makedirs(upload_folder, exist_ok=True)

    register_error_handlers(app)

    # --- permissions for Jinja templates ---
    from permissions import can_curate_featured, can_manage_categories, can_manage_users, can_review

    @app.context_processor
    def inject_perms():
        return dict(
            can_review=can_review,
            can_curate_featured=can_curate_featured,
            can_manage_categories=can_manage_categories,
            can_manage_users=can_manage_users,
        )

    return app


def register_error_handlers(app: Flask) -> None:
    """Domain errors and HTTP aborts render the same error pages."""

    @app.errorhandler(AuthorizationError)
    def handle_authorization_error(exc):
        return render_template("errors/403.html", message=exc.message), 403

    @app.errorhandler(NotFound)
    def handle_not_found(exc):
        return render_template("errors/404.html", message=exc.message), 404

    @app.errorhandler(StorageError)
    def handle_storage_error(exc):
        # details were logged where the transaction failed
        return render_template("errors/500.html", message=exc.message), 500

    @app.errorhandler(403)
    def forbidden(_exc):
        return render_template("errors/403.html", message="Access denied"), 403

    @app.errorhandler(404)
    def page_not_found(_exc):
        return render_template("errors/404.html", message="Page not found"), 404

    @app.errorhandler(500)
    def server_error(_exc):
        app.logger.exception("Unhandled error")
        return render_template("errors/500.html", message=StorageError.default_message), 500


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True)
