import hashlib
import hmac
import json
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import jwt
import pytest
from svix.webhooks import Webhook

from app import create_app
from config import TestConfig
from helpers import DateTimeNaiveHelper
from models import db, Course, ProcessedWebhookEvent, Purchase, Subscription, PlanType, User
from payment_gateway import PaymentGateway


class FakePaymentGateway(PaymentGateway):
    """
    Records what would have been sent to Stripe; webhook verification stays real.
    """

    def __init__(self):
        super().__init__(TestConfig.STRIPE_SECRET_KEY, TestConfig.STRIPE_WEBHOOK_SECRET)
        self.customers = []
        self.sessions = []
        self.return_url = True

    def create_customer(self, email, name, metadata=None):
        customer_id = f"cus_test_{len(self.customers) + 1}"
        self.customers.append({"id": customer_id, "email": email, "name": name, "metadata": metadata})
        return customer_id

    def create_checkout_session(self, **params):
        session_id = f"cs_test_{len(self.sessions) + 1}"
        self.sessions.append(params)
        url = f"https://checkout.stripe.com/c/pay/{session_id}" if self.return_url else None
        return session_id, url


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def get_current_utc():
    """Helper to get current UTC time consistently"""
    return datetime.now(timezone.utc)


def get_30_days_later():
    """Helper to get current UTC time plus 30 days"""
    return int((get_current_utc() + timedelta(days=30)).timestamp())


def make_token(external_id, email="", name=""):
    claims = {"sub": external_id, "email": email, "name": name,
              "exp": int(time.time()) + 3600}
    return jwt.encode(claims, TestConfig.IDENTITY_JWT_SECRET, algorithm="HS256")


def auth_headers(external_id, email="", name=""):
    return {"Authorization": f"Bearer {make_token(external_id, email, name)}"}


def sign_stripe_payload(payload, secret=TestConfig.STRIPE_WEBHOOK_SECRET, timestamp=None):
    """Build a Stripe-Signature header the way Stripe does: HMAC-SHA256 over "t.payload"."""
    timestamp = timestamp or int(time.time())
    signed_payload = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def post_stripe_event(client, event, signature=None):
    payload = event if isinstance(event, str) else json.dumps(event)
    headers = {"Stripe-Signature": signature or sign_stripe_payload(payload)}
    return client.post("/stripe/webhook", data=payload, headers=headers, content_type="application/json")


def svix_headers(payload, msg_id="msg_test_1", secret=TestConfig.CLERK_WEBHOOK_SECRET):
    now = datetime.now(timezone.utc)
    signature = Webhook(secret).sign(msg_id, now, payload)
    return {
        "svix-id": msg_id,
        "svix-timestamp": str(int(now.timestamp())),
        "svix-signature": signature,
    }


def post_clerk_event(client, event, headers=None, msg_id="msg_test_1"):
    payload = json.dumps(event)
    headers = svix_headers(payload, msg_id) if headers is None else headers
    return client.post("/clerk-webhook", data=payload, headers=headers, content_type="application/json")


def create_clerk_user_event(clerk_id, email="ada@example.com", first_name="Ada", last_name="Lovelace"):
    return {
        "type": "user.created",
        "object": "event",
        "data": {
            "id": clerk_id,
            "email_addresses": [{"id": "idn_1", "email_address": email}],
            "primary_email_address_id": "idn_1",
            "first_name": first_name,
            "last_name": last_name,
        },
    }


def create_checkout_completed_event(event_id, session_id, customer_id, course_id, user_id=None,
                                    amount_total=4999):
    metadata = {"courseId": str(course_id)} if course_id is not None else {}
    if user_id is not None:
        metadata["userId"] = str(user_id)

    return {
        "id": event_id,
        "object": "event",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "customer": customer_id,
                "amount_total": amount_total,
                "currency": "usd",
                "payment_status": "paid",
                "metadata": metadata,
            }
        },
    }


def create_subscription_event(event_id, event_type, subscription_id, customer_id, status="active",
                              interval="month", cancel_at_period_end=False, current_period_end=None):
    if current_period_end is None:
        current_period_end = get_30_days_later()

    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": subscription_id,
                "object": "subscription",
                "customer": customer_id,
                "status": status,
                "cancel_at_period_end": cancel_at_period_end,
                "current_period_start": int(get_current_utc().timestamp()),
                "current_period_end": current_period_end,
                "items": {
                    "data": [{"price": {"recurring": {"interval": interval}}}]
                },
            }
        },
    }


def create_bare_event(event_id, event_type, customer_id="cus_123"):
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "customer": customer_id
            }
        }
    }


def create_user(clerk_id="user_ext_1", stripe_customer_id=None, email="ada@example.com", name="Ada Lovelace"):
    user = User(clerk_id=clerk_id, email=email, name=name, stripe_customer_id=stripe_customer_id)
    db.session.add(user)
    db.session.commit()
    return user.id


def create_course(title="Python for Data", price="49.99", description="Learn pandas", image_url=""):
    course = Course(title=title, description=description, image_url=image_url, price=Decimal(price))
    db.session.add(course)
    db.session.commit()
    return course.id


def create_purchase(user_id, course_id, stripe_purchase_id="cs_seed_1", amount=4999):
    purchase = Purchase(user_id=user_id, course_id=course_id, amount=amount, stripe_purchase_id=stripe_purchase_id)
    db.session.add(purchase)
    db.session.commit()
    return purchase.id


def create_subscription(user_id, status="active", stripe_subscription_id="sub_seed_1"):
    now = get_current_utc()
    subscription = Subscription(user_id=user_id, plan_type=PlanType.MONTHLY, current_period_start=now,
                                current_period_end=now + timedelta(days=30),
                                stripe_subscription_id=stripe_subscription_id, status=status)
    db.session.add(subscription)
    db.session.flush()
    db.session.get(User, user_id).current_subscription_id = subscription.id
    db.session.commit()
    return subscription.id


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app(gateway, clock):
    """
    Create the app with an in-memory database and the fake Stripe gateway.
    """
    app = create_app(TestConfig, gateway=gateway, clock=clock)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """
    Create the test client for the app.
    """
    with app.test_client() as client:
        yield client
