"""
Maps identity-provider subjects to internal user records.
"""
import logging

from sqlalchemy.exc import IntegrityError

from models import db, User

logger = logging.getLogger(__name__)


class IdentityResolver:

    @staticmethod
    def upsert_user(external_id, email, name, payment_customer_id=None):
        """
        Return the id of the user with this external id, creating the row on first sight.

        First write wins: an existing row is returned unchanged. The unique index on
        `users.clerk_id` decides concurrent inserts; the loser rolls back and re-reads.
        """
        if not external_id:
            raise ValueError("external_id is required")

        user = IdentityResolver.get_by_external_id(external_id)
        if user:
            logger.debug("User %s already exists (id=%s)", external_id, user.id)
            return user.id

        user = User(clerk_id=external_id, email=email or "", name=name or "",
                    stripe_customer_id=payment_customer_id)
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            user = IdentityResolver.get_by_external_id(external_id)
            if user is None:
                # the collision was on another unique column, e.g. stripe_customer_id
                raise
            logger.info("Concurrent insert for %s, using existing user id %s", external_id, user.id)
            return user.id

        logger.info("Created user id %s for external id %s", user.id, external_id)
        return user.id

    @staticmethod
    def get_user(user_id):
        return db.session.get(User, user_id)

    @staticmethod
    def get_by_external_id(external_id):
        return User.query.filter_by(clerk_id=external_id).first()

    @staticmethod
    def get_by_stripe_customer_id(customer_id):
        if not customer_id:
            return None
        return User.query.filter_by(stripe_customer_id=customer_id).first()

    @staticmethod
    def fill_missing_profile(user_id, email, name):
        """
        Fill in a blank email or name. Values already stored are never overwritten.
        """
        user = db.session.get(User, user_id)
        if user is None:
            return None

        changed = False
        if email and not user.email:
            user.email = email
            changed = True
        if name and not user.name:
            user.name = name
            changed = True

        if changed:
            db.session.commit()
            logger.info("Completed profile of user id %s", user.id)
        return user

    @staticmethod
    def attach_stripe_customer(user, customer_id):
        """
        Record the provider customer id on the user; an existing id is kept.
        """
        if user.stripe_customer_id:
            return user.stripe_customer_id

        user.stripe_customer_id = customer_id
        db.session.commit()
        logger.info("Attached Stripe customer %s to user id %s", customer_id, user.id)
        return customer_id
