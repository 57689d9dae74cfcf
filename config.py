"""
Configuration settings for the app
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default):
    return os.environ.get(name, str(default)).lower() in ("1", "true", "yes")


class Config:
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///course_market.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY", "")
    STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET", "")
    CLERK_WEBHOOK_SECRET = os.environ.get("CLERK_WEBHOOK_SECRET", "")

    # bearer tokens are checked against the JWKS endpoint when set, otherwise against the shared secret.
    # The session token template should carry `email` and `name` claims; users provisioned at checkout
    # without them are completed by the Clerk user.created webhook.
    CLERK_JWKS_URL = os.environ.get("CLERK_JWKS_URL")
    IDENTITY_JWT_SECRET = os.environ.get("IDENTITY_JWT_SECRET")

    APP_BASE_URL = os.environ.get("APP_BASE_URL", "http://localhost:3000")
    CURRENCY = os.environ.get("CURRENCY", "usd")

    CHECKOUT_RATE_LIMIT = int(os.environ.get("CHECKOUT_RATE_LIMIT", "3"))
    CHECKOUT_RATE_LIMIT_WINDOW = int(os.environ.get("CHECKOUT_RATE_LIMIT_WINDOW", "60"))  # seconds
    PROVISION_USERS_ON_CHECKOUT = _env_bool("PROVISION_USERS_ON_CHECKOUT", True)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"

    STRIPE_SECRET_KEY = "sk_test_dummy"
    STRIPE_WEBHOOK_SECRET = "whsec_test_stripe_secret"
    # svix secrets are base64 after the prefix
    CLERK_WEBHOOK_SECRET = "whsec_MfKQ9r8GKYqrTwjUPD8ILPZIo2LaLaSw"

    CLERK_JWKS_URL = None
    IDENTITY_JWT_SECRET = "test-identity-secret-with-enough-length"

    APP_BASE_URL = "http://localhost:3000"
    CHECKOUT_RATE_LIMIT = 3
    CHECKOUT_RATE_LIMIT_WINDOW = 60
    PROVISION_USERS_ON_CHECKOUT = True

    LOG_LEVEL = "DEBUG"
