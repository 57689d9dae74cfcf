"""
Course marketplace backend: purchases, subscriptions and course access
"""
from dataclasses import dataclass

from flask import Flask

from auth import IdentityProvider
from checkout_handler import CheckoutHandler
from clerk_webhook_handler import ClerkWebhookHandler
from config import Config
from logging_config import setup_logging
from models import db
from payment_gateway import PaymentGateway
from rate_limiter import RateLimiter
from routes import api_bp
from stripe_webhook_handler import StripeWebhookHandler


@dataclass
class Services:
    """Everything a request needs, built once per process."""
    gateway: PaymentGateway
    identity_provider: IdentityProvider
    checkout: CheckoutHandler
    stripe_webhooks: StripeWebhookHandler
    clerk_webhooks: ClerkWebhookHandler


def create_app(config_class=Config, gateway=None, identity_provider=None, clock=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    setup_logging(app.config["LOG_LEVEL"])
    db.init_app(app)

    gateway = gateway or PaymentGateway(app.config["STRIPE_SECRET_KEY"], app.config["STRIPE_WEBHOOK_SECRET"])
    identity_provider = identity_provider or IdentityProvider(
        jwks_url=app.config["CLERK_JWKS_URL"],
        secret=app.config["IDENTITY_JWT_SECRET"],
    )

    limiter_kwargs = {"clock": clock} if clock else {}
    rate_limiter = RateLimiter("checkout", app.config["CHECKOUT_RATE_LIMIT"],
                               app.config["CHECKOUT_RATE_LIMIT_WINDOW"], **limiter_kwargs)

    app.extensions["course_market"] = Services(
        gateway=gateway,
        identity_provider=identity_provider,
        checkout=CheckoutHandler(
            gateway,
            rate_limiter,
            base_url=app.config["APP_BASE_URL"],
            currency=app.config["CURRENCY"],
            provision_users=app.config["PROVISION_USERS_ON_CHECKOUT"],
        ),
        stripe_webhooks=StripeWebhookHandler(gateway),
        clerk_webhooks=ClerkWebhookHandler(app.config["CLERK_WEBHOOK_SECRET"]),
    )

    app.register_blueprint(api_bp)

    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        db.create_all()

    return app


if __name__ == "__main__":
    application = create_app()
    with application.app_context():
        db.create_all()
    application.run(debug=True)
