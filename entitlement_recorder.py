"""
Turns verified payment events into entitlements.

Nothing here commits: the webhook handler owns the transaction, so the
purchase or subscription write and the processed-event marker land together.
"""
import logging

from errors import IntegrityFault
from events import METADATA_COURSE_ID, METADATA_USER_ID
from helpers import DateTimeNaiveHelper
from identity_resolver import IdentityResolver
from models import db, Course, PlanType, Purchase, Subscription, User

logger = logging.getLogger(__name__)


class EntitlementRecorder:

    @staticmethod
    def on_checkout_completed(metadata, payment_customer_id, amount_total, provider_transaction_id):
        """
        Record the purchase behind a completed checkout session.

        The provider transaction id (the checkout session id) is the deduplication
        key: a redelivered event returns the purchase written the first time.
        """
        metadata = metadata or {}
        course_ref = metadata.get(METADATA_COURSE_ID)
        if not course_ref or not payment_customer_id:
            raise IntegrityFault("Missing courseId or customer id in checkout session")
        if not provider_transaction_id:
            raise IntegrityFault("Missing checkout session id")
        if amount_total is None:
            raise IntegrityFault("Missing amount_total in checkout session")

        existing = Purchase.query.filter_by(stripe_purchase_id=provider_transaction_id).first()
        if existing:
            logger.info("Purchase for %s already recorded (id=%s), skipping", provider_transaction_id, existing.id)
            return existing

        user = IdentityResolver.get_by_stripe_customer_id(payment_customer_id)
        if not user:
            raise IntegrityFault(f"User not found for Stripe customer {payment_customer_id}")

        user_ref = metadata.get(METADATA_USER_ID)
        if user_ref and user_ref != str(user.id):
            raise IntegrityFault(
                f"Checkout metadata user {user_ref} does not match customer {payment_customer_id} (user {user.id})")

        course = EntitlementRecorder._get_course(course_ref)

        purchase = Purchase(user_id=user.id, course_id=course.id, amount=int(amount_total),
                            stripe_purchase_id=provider_transaction_id)
        db.session.add(purchase)
        db.session.flush()

        logger.info("Recorded purchase id %s: user id %s bought course id %s for %s",
                    purchase.id, user.id, course.id, purchase.amount)
        return purchase

    @staticmethod
    def _get_course(course_ref):
        try:
            course_id = int(course_ref)
        except (TypeError, ValueError):
            raise IntegrityFault(f"Malformed courseId {course_ref!r} in checkout metadata")

        course = db.session.get(Course, course_id)
        if not course:
            raise IntegrityFault(f"Course {course_id} from checkout metadata does not exist")
        return course

    @staticmethod
    def on_subscription_changed(subscription_object):
        """
        Handle subscription created/updated events: upsert the row by Stripe id and make
        it the user's current subscription.
        """
        user = IdentityResolver.get_by_stripe_customer_id(subscription_object.customer)
        if not user:
            raise IntegrityFault(f"User not found for Stripe customer {subscription_object.customer}")

        plan_type = EntitlementRecorder._plan_type(subscription_object.interval)
        period_start = DateTimeNaiveHelper.from_timestamp(subscription_object.period_start)
        period_end = DateTimeNaiveHelper.from_timestamp(subscription_object.period_end)
        if period_start is None or period_end is None:
            raise IntegrityFault(f"Subscription {subscription_object.id} has no current period")

        subscription = EntitlementRecorder._find_subscription(subscription_object.id)
        if subscription is None:
            subscription = Subscription(stripe_subscription_id=subscription_object.id, user_id=user.id)
            db.session.add(subscription)
        elif subscription.user_id != user.id:
            raise IntegrityFault(f"Subscription {subscription_object.id} belongs to another user")

        subscription.plan_type = plan_type
        subscription.current_period_start = period_start
        subscription.current_period_end = period_end
        subscription.status = subscription_object.status
        subscription.cancel_at_period_end = subscription_object.cancel_at_period_end
        db.session.flush()

        user.current_subscription_id = subscription.id

        logger.info("Subscription %s for user id %s is now %s (ends %s)",
                    subscription_object.id, user.id, subscription.status, period_end.isoformat())
        return subscription

    @staticmethod
    def on_subscription_deleted(subscription_object):
        """
        Handle subscription deleted events: keep the row with its final status and drop
        every user's pointer to it so it can no longer grant access.
        """
        subscription = Subscription.query.filter_by(stripe_subscription_id=subscription_object.id).first()
        if subscription is None:
            logger.info("Deleted subscription %s was never recorded, nothing to do", subscription_object.id)
            return None

        subscription.status = subscription_object.status or "canceled"
        subscription.cancel_at_period_end = subscription_object.cancel_at_period_end

        for user in User.query.filter_by(current_subscription_id=subscription.id).all():
            user.current_subscription_id = None
            logger.info("Cleared subscription %s from user id %s", subscription_object.id, user.id)

        return subscription

    @staticmethod
    def _find_subscription(stripe_subscription_id):
        return Subscription.query.filter_by(stripe_subscription_id=stripe_subscription_id).first()

    @staticmethod
    def _plan_type(interval):
        try:
            return PlanType(interval)
        except ValueError:
            raise IntegrityFault(f"Unsupported subscription interval {interval!r}")
