"""
Checkout session creation for one-time course purchases.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Optional

from course_handler import CourseHandler
from errors import AlreadyPurchased, Unauthorized, UserNotFound
from events import METADATA_COURSE_ID, METADATA_USER_ID
from identity_resolver import IdentityResolver
from user_access_handler import UserAccessHandler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutSession:
    session_id: Optional[str]
    checkout_url: Optional[str]  # None means the provider produced no page, callers must treat it as a failure

    def to_dict(self):
        return {"session_id": self.session_id, "checkout_url": self.checkout_url}


def to_minor_units(price):
    """
    Dollars to cents: round(price * 100), rounding half to even on the exact decimal value.
    """
    cents = (Decimal(str(price)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_EVEN)
    return int(cents)


class CheckoutHandler:

    def __init__(self, gateway, rate_limiter, base_url, currency="usd", provision_users=True):
        self.gateway = gateway
        self.rate_limiter = rate_limiter
        self.base_url = base_url.rstrip("/")
        self.currency = currency
        self.provision_users = provision_users

    def create_checkout_session(self, identity, course_id):
        """
        Create a Stripe Checkout Session for `course_id` on behalf of `identity`.

        Order of checks: identity, user, rate limit, course, existing access. The
        session metadata carries courseId and userId so the completion webhook can
        be reconciled without another lookup.
        """
        if identity is None:
            raise Unauthorized()

        user = self._resolve_user(identity)

        self.rate_limiter.hit(user.id)

        course = CourseHandler.get_course(course_id)

        if UserAccessHandler.has_access(identity, user.id, course.id).has_access:
            raise AlreadyPurchased()

        customer_id = self._ensure_customer(user)

        product_data = {"name": course.title}
        if course.description:
            product_data["description"] = course.description
        if course.image_url:
            product_data["images"] = [course.image_url]

        session_id, url = self.gateway.create_checkout_session(
            mode="payment",
            customer=customer_id,
            line_items=[{
                "price_data": {
                    "currency": self.currency,
                    "product_data": product_data,
                    "unit_amount": to_minor_units(course.price),
                },
                "quantity": 1,
            }],
            success_url=f"{self.base_url}/courses/{course.id}/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{self.base_url}/courses",
            metadata={
                METADATA_COURSE_ID: str(course.id),
                METADATA_USER_ID: str(user.id),
            },
        )

        if not url:
            logger.error("Stripe returned no checkout url for session %s", session_id)
        else:
            logger.info("Created checkout session %s for user id %s, course id %s", session_id, user.id, course.id)

        return CheckoutSession(session_id=session_id, checkout_url=url)

    def _resolve_user(self, identity):
        user = IdentityResolver.get_by_external_id(identity.external_id)
        if user is None and self.provision_users:
            user_id = IdentityResolver.upsert_user(identity.external_id, identity.email, identity.name)
            user = IdentityResolver.get_user(user_id)
        if user is None:
            raise UserNotFound()
        return user

    def _ensure_customer(self, user):
        if user.stripe_customer_id:
            return user.stripe_customer_id

        customer_id = self.gateway.create_customer(
            email=user.email,
            name=user.name,
            metadata={METADATA_USER_ID: str(user.id)},
        )
        return IdentityResolver.attach_stripe_customer(user, customer_id)
