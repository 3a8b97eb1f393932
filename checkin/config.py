import os

from checkin.constants import (
    BUSINESS_TIMEZONE,
    SEARCH_PAGE_SIZE,
    SERVICE_WEEKDAY,
)


class Config:
    """Base configuration."""

    FLASK_ENV = os.getenv("FLASK_ENV", "development")
    SENTRY_DSN = os.getenv("SENTRY_DSN")
    SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "1.0"))
    SENTRY_PROFILES_SAMPLE_RATE = float(os.getenv("SENTRY_PROFILES_SAMPLE_RATE", "1.0"))
    APP_VERSION = os.getenv("HEROKU_SLUG_COMMIT", "local")
    FRONTEND_DOMAIN = os.getenv("FRONTEND_DOMAIN", "http://localhost:3000")
    BACKEND_DOMAIN = os.getenv("BACKEND_DOMAIN", "http://localhost:5000")
    AUTH_AUTHORIZED_PARTIES = [
        os.getenv("FRONTEND_DOMAIN", "http://localhost:3000"),
        os.getenv("BACKEND_DOMAIN", "http://localhost:5000"),
    ]

    # Clerk Configuration
    CLERK_SECRET_KEY = os.getenv("CLERK_SECRET_KEY")

    # Supabase Configuration
    SUPABASE_URL = os.getenv("SUPABASE_URL")
    SUPABASE_KEY = os.getenv("SUPABASE_KEY")

    # Check-in Configuration
    BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", BUSINESS_TIMEZONE)
    SERVICE_WEEKDAY = int(os.getenv("SERVICE_WEEKDAY", SERVICE_WEEKDAY))
    SEARCH_PAGE_SIZE = int(os.getenv("SEARCH_PAGE_SIZE", SEARCH_PAGE_SIZE))
    # ISO date. When unset the cutoff is 30 June of the service date's year.
    AGE_CUTOFF_DATE = os.getenv("AGE_CUTOFF_DATE")


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True
    CORS_HEADERS = "Content-Type"


class TestingConfig(Config):
    """Testing configuration."""

    TESTING = True
    DEBUG = True
    SUPABASE_URL = None
    SUPABASE_KEY = None
    SENTRY_DSN = None
    AGE_CUTOFF_DATE = None
    SERVICE_WEEKDAY = 6
    BUSINESS_TIMEZONE = "Australia/Sydney"


class StagingConfig(Config):
    """Staging configuration."""

    DEBUG = True
    SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.5"))
    SENTRY_PROFILES_SAMPLE_RATE = float(os.getenv("SENTRY_PROFILES_SAMPLE_RATE", "0.25"))
    CORS_ORIGINS = os.getenv(
        "CORS_ORIGINS",
        "",
    ).split(",")
    CORS_SUPPORTS_CREDENTIALS = True
    CORS_ALLOW_HEADERS = ["Content-Type", "Authorization"]


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG = False
    SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1"))  # Lower sample rate for prod
    SENTRY_PROFILES_SAMPLE_RATE = float(os.getenv("SENTRY_PROFILES_SAMPLE_RATE", "0.05"))
    CORS_ORIGINS = os.getenv(
        "CORS_ORIGINS",
        "",
    ).split(",")
    CORS_SUPPORTS_CREDENTIALS = True
    CORS_ALLOW_HEADERS = ["Content-Type", "Authorization"]
