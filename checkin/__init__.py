import os

import sentry_sdk
from clerk_backend_api import Clerk
from dotenv import load_dotenv
from flask import Flask
from sentry_sdk.integrations.flask import FlaskIntegration

from .constants import ENV_DEVELOPMENT, ENV_PRODUCTION, ENV_STAGING, ENV_TESTING
from .extensions import cors
from .services import init_services
from .supabase.gateway import RecordStore


def create_app(config_class=None):
    """
    Application factory function to create and configure the Flask app.
    """
    app = Flask(__name__)

    # Load environment variables early
    load_dotenv()

    # --- Configuration ---
    if config_class is None:
        # Determine configuration based on FLASK_ENV environment variable
        env = os.getenv("FLASK_ENV", ENV_DEVELOPMENT)
        if env == ENV_PRODUCTION:
            from .config import ProductionConfig

            config_class = ProductionConfig
        elif env == ENV_STAGING:
            from .config import StagingConfig

            config_class = StagingConfig
        elif env == ENV_TESTING:
            from .config import TestingConfig

            config_class = TestingConfig
        else:  # Default to development
            from .config import DevelopmentConfig

            config_class = DevelopmentConfig

    app.config.from_object(config_class)

    # --- Sentry Initialization ---
    sentry_dsn = app.config.get("SENTRY_DSN")
    if sentry_dsn:
        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=app.config.get("SENTRY_TRACES_SAMPLE_RATE", 1.0),
            profiles_sample_rate=app.config.get("SENTRY_PROFILES_SAMPLE_RATE", 1.0),
            environment=app.config.get("FLASK_ENV"),
            release=app.config.get("APP_VERSION", None),
        )
        print("Sentry initialized for environment: ", f"{app.config.get('FLASK_ENV')}")
    else:
        print("SENTRY_DSN not found. Sentry will not be initialized.")

    # --- Clerk SDK Initialization ---
    clerk_secret_key = app.config.get("CLERK_SECRET_KEY")

    if not clerk_secret_key:
        print("WARNING: CLERK_SECRET_KEY not found. Clerk authentication will be disabled.")
        app.clerk_client = None
    else:
        app.clerk_client = Clerk(bearer_auth=clerk_secret_key)
        print("Clerk SDK initialized successfully.")

    # --- Record Store ---
    supabase_url = app.config.get("SUPABASE_URL")
    supabase_key = app.config.get("SUPABASE_KEY")
    if supabase_url and supabase_key:
        init_services(app, RecordStore.from_config(supabase_url, supabase_key, app.logger))
    else:
        print("WARNING: SUPABASE_URL or SUPABASE_KEY not found. Record store routes will return 503.")
        init_services(app, None)

    # --- CORS Configuration ---
    # For production, use the configured origins, credentials, and headers
    if app.config["FLASK_ENV"] == ENV_PRODUCTION or app.config["FLASK_ENV"] == ENV_STAGING:
        cors.init_app(
            app,
            resources={
                r"/*": {
                    "origins": app.config.get("CORS_ORIGINS", []),
                    "supports_credentials": app.config.get("CORS_SUPPORTS_CREDENTIALS", False),
                    "allow_headers": app.config.get("CORS_ALLOW_HEADERS", ["Content-Type"]),
                }
            },
        )
    else:  # For development, allow any origin
        cors.init_app(
            app,
            resources={
                r"/*": {
                    "origins": "*",
                    "supports_credentials": True,
                    "allow_headers": ["Content-Type", "Authorization"],
                }
            },
        )

    # --- Error Handlers ---
    from .routes.errors import register_error_handlers

    register_error_handlers(app)

    # --- Register Blueprints ---
    from .routes.attendance import bp as attendance_bp
    from .routes.child import bp as child_bp
    from .routes.guardian import bp as guardian_bp
    from .routes.main import bp as main_bp
    from .routes.service_date import bp as service_date_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(child_bp)
    app.register_blueprint(guardian_bp)
    app.register_blueprint(service_date_bp)
    app.register_blueprint(attendance_bp)

    return app
