"""
Clerk webhook handler, signed through Svix.
"""
import json
import logging

from pydantic import ValidationError
from svix.webhooks import Webhook, WebhookVerificationError

from events import ClerkUserData
from helpers import ResponseHelper
from identity_resolver import IdentityResolver
from models import db

logger = logging.getLogger(__name__)

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")
USER_CREATED = "user.created"


class ClerkWebhookHandler:

    def __init__(self, webhook_secret):
        if not webhook_secret:
            raise ValueError("CLERK_WEBHOOK_SECRET is not set")
        self.webhook = Webhook(webhook_secret)

    def handle(self, raw_body, headers):
        svix_headers = {name: headers.get(name) for name in SVIX_HEADERS}
        if not all(svix_headers.values()):
            logger.warning("Clerk webhook without svix headers")
            return ResponseHelper.error("Error -- no svix headers", 400)

        try:
            self.webhook.verify(raw_body, svix_headers)
        except (WebhookVerificationError, ValueError) as e:
            logger.warning("Clerk webhook verification failed: %s", e)
            return ResponseHelper.error("Error -- webhook verification failed", 400)

        # newer svix releases return nothing from verify(), so read the verified body here
        try:
            event = json.loads(raw_body)
        except ValueError:
            logger.warning("Clerk webhook body is not JSON (svix-id=%s)", svix_headers["svix-id"])
            return ResponseHelper.error("Error -- invalid payload", 400)
        if not isinstance(event, dict):
            return ResponseHelper.error("Error -- invalid payload", 400)

        event_type = event.get("type")
        logger.info("Clerk webhook %s (svix-id=%s)", event_type, svix_headers["svix-id"])

        if event_type != USER_CREATED:
            return ResponseHelper.success("Webhook processed successfully")

        try:
            data = ClerkUserData.model_validate(event.get("data") or {})
            email = data.primary_email
            if not email:
                raise ValueError(f"Clerk user {data.id} has no email address")

            # first-write-wins on clerk_id makes redeliveries harmless
            user_id = IdentityResolver.upsert_user(data.id, email, data.full_name)
            # a user provisioned at checkout may be missing what the session token lacked
            IdentityResolver.fill_missing_profile(user_id, email, data.full_name)
        except (ValidationError, ValueError) as e:
            db.session.rollback()
            logger.error("Malformed user.created payload: %s", e)
            return ResponseHelper.error("Error -- failed to create user", 500)
        except Exception:
            db.session.rollback()
            logger.exception("Failed to create user from Clerk webhook")
            return ResponseHelper.error("Error -- failed to create user", 500)

        return ResponseHelper.success("Webhook processed successfully")
