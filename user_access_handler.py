"""
User Access Handler for the app.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from errors import Forbidden, Unauthorized, UserNotFound
from models import db, User, Purchase

ACTIVE_SUBSCRIPTION_STATUS = "active"


class AccessType(Enum):
    SUBSCRIPTION = "subscription"
    PURCHASE = "purchase"


@dataclass(frozen=True)
class AccessDecision:
    has_access: bool
    access_type: Optional[AccessType] = None

    def to_dict(self):
        return {
            "has_access": self.has_access,
            "access_type": self.access_type.value if self.access_type else None,
        }


class UserAccessHandler:

    @staticmethod
    def _load_own_user(identity, user_id):
        if identity is None:
            raise Unauthorized()

        user = db.session.get(User, user_id)
        if not user:
            raise UserNotFound()
        if user.clerk_id != identity.external_id:
            raise Forbidden("Cannot read another user's access")
        return user

    @staticmethod
    def has_access(identity, user_id, course_id):
        """
        Decide whether the user can open the course.

        An active subscription opens every course; otherwise a recorded purchase of
        this course does. Duplicate purchase rows are harmless, only existence is checked.
        """
        user = UserAccessHandler._load_own_user(identity, user_id)

        subscription = user.current_subscription
        if subscription is not None and subscription.status == ACTIVE_SUBSCRIPTION_STATUS:
            return AccessDecision(True, AccessType.SUBSCRIPTION)

        if UserAccessHandler.has_purchased(user.id, course_id):
            return AccessDecision(True, AccessType.PURCHASE)

        return AccessDecision(False)

    @staticmethod
    def has_purchased(user_id, course_id):
        query = Purchase.query.filter_by(user_id=user_id, course_id=course_id)
        return db.session.query(query.exists()).scalar()

    @staticmethod
    def get_user_subscription(identity, user_id):
        """
        Current subscription of the user, or None.
        """
        user = UserAccessHandler._load_own_user(identity, user_id)
        return user.current_subscription
