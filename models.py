"""
Database models for the app
"""
from datetime import datetime, timezone
from enum import Enum

from flask_sqlalchemy import SQLAlchemy

from helpers import DateTimeNaiveHelper

db = SQLAlchemy()


def _utcnow():
    return datetime.now(timezone.utc)


def _isoformat(dt):
    dt = DateTimeNaiveHelper.make_timezone_aware(dt)
    return dt.isoformat() if dt else None


class PlanType(Enum):
    MONTHLY = "month"
    YEARLY = "year"


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    clerk_id = db.Column(db.String(100), unique=True, nullable=False)  # external identity id, never updated
    email = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=False, default="")
    stripe_customer_id = db.Column(db.String(100), unique=True, nullable=True)
    current_subscription_id = db.Column(
        db.Integer,
        db.ForeignKey("subscriptions.id", ondelete="SET NULL", use_alter=True),
        nullable=True,
    )
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    current_subscription = db.relationship("Subscription", foreign_keys=[current_subscription_id],
                                           post_update=True)

    def to_dict(self):
        return {
            "id": self.id,
            "clerk_id": self.clerk_id,
            "email": self.email,
            "name": self.name,
            "stripe_customer_id": self.stripe_customer_id,
            "current_subscription_id": self.current_subscription_id,
        }


class Course(db.Model):
    __tablename__ = "courses"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    image_url = db.Column(db.String(1024), nullable=False, default="")
    price = db.Column(db.Numeric(10, 2), nullable=False)  # dollars, minor units only at the payment boundary

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "image_url": self.image_url,
            "price": str(self.price),
        }


class Purchase(db.Model):
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_user_id_course_id", "user_id", "course_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=False)
    amount = db.Column(db.Integer, nullable=False)  # cents, authoritative over Course.price
    purchase_date = db.Column(db.DateTime, nullable=False, default=_utcnow)
    stripe_purchase_id = db.Column(db.String(255), unique=True, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "amount": self.amount,
            "purchase_date": _isoformat(self.purchase_date),
            "stripe_purchase_id": self.stripe_purchase_id,
        }


class Subscription(db.Model):
    __tablename__ = "subscriptions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    plan_type = db.Column(db.Enum(PlanType, values_callable=lambda enum: [m.value for m in enum]),
                          nullable=False)
    current_period_start = db.Column(db.DateTime, nullable=False)
    current_period_end = db.Column(db.DateTime, nullable=False)
    stripe_subscription_id = db.Column(db.String(255), unique=True, nullable=False)
    status = db.Column(db.String(32), nullable=False)  # provider-defined: active, canceled, past_due, ...
    cancel_at_period_end = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "plan_type": self.plan_type.value,
            "current_period_start": _isoformat(self.current_period_start),
            "current_period_end": _isoformat(self.current_period_end),
            "stripe_subscription_id": self.stripe_subscription_id,
            "status": self.status,
            "cancel_at_period_end": self.cancel_at_period_end,
        }


class ProcessedWebhookEvent(db.Model):
    __tablename__ = "processed_webhook_events"

    stripe_event_id = db.Column(db.String(255), primary_key=True)
    event_type = db.Column(db.String(255), nullable=False)
    processed_at = db.Column(db.DateTime, nullable=False, default=_utcnow)


class RateLimitBucket(db.Model):
    __tablename__ = "rate_limit_buckets"

    key = db.Column(db.String(255), primary_key=True)
    window_start = db.Column(db.Float, nullable=False)  # unix seconds
    count = db.Column(db.Integer, nullable=False, default=0)
