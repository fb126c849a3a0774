import logging

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import AuthSettings, get_config
from .cli import register_commands
from .errors import register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)
from services.auth_service import AuthService
from services.credential_store import UserStore
from services.token_ledger import RefreshTokenLedger
from utils.decorators import jwt_optional
from utils.tokens import TokenCodec

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Auth API",
        "version": "1.0.0",
        "description": "REST API for user accounts and JWT authentication with rotating refresh tokens.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
      - Selects the config class (APP_ENV or `config_name`), then applies `overrides`
      - Builds AuthSettings once and injects it into the codec and the auth service
      - A malformed token lifetime or a bad production secret stops startup here
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = AuthSettings.from_config(app.config).validate(
        enforce_secret_policy=app.config.get("ENFORCE_SECRET_POLICY", False)
    )

    storage.init_app(
        app.config["DATABASE_URL"],
        echo=app.config.get("SQL_ECHO", False),
        timeout=app.config.get("STORAGE_TIMEOUT_SECONDS", 5.0),
    )

    codec = TokenCodec(settings)
    user_store = UserStore(storage)
    app.extensions["auth_settings"] = settings
    app.extensions["token_codec"] = codec
    app.extensions["user_store"] = user_store
    app.extensions["auth_service"] = AuthService(
        settings,
        storage,
        codec=codec,
        users=user_store,
        ledger=RefreshTokenLedger(storage),
    )

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    # flask create-admin
    register_commands(app)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    @jwt_optional()
    def root(identity=None):
        return {
            "message": "Welcome to Auth API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
            "authenticated": identity is not None,
            "user": identity.to_dict() if identity else None,
        }, 200

    return app
