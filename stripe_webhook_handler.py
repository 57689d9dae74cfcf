"""
Stripe webhook event handlers for the app
"""
import json
import logging

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from entitlement_recorder import EntitlementRecorder
from errors import SignatureVerificationFailed
from events import (
    AcknowledgedEvent,
    CheckoutCompletedEvent,
    SubscriptionEvent,
    parse_stripe_event,
)
from helpers import ResponseHelper
from models import db, ProcessedWebhookEvent

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "Stripe-Signature"


class StripeWebhookHandler:

    def __init__(self, gateway):
        self.gateway = gateway

    def handle(self, raw_body, headers):
        """
        Verify, deduplicate and dispatch one Stripe delivery.

        400 for anything that fails verification, 200 for handled, acknowledged or
        ignored events, 500 when a handler fails so Stripe redelivers later.
        """
        try:
            self.gateway.construct_event(raw_body, headers.get(SIGNATURE_HEADER))
        except SignatureVerificationFailed as e:
            logger.warning("Stripe webhook rejected: %s", e.message)
            return ResponseHelper.error("Webhook signature verification failed", 400)

        # the SDK already checked the body is JSON; keep the handlers on plain dicts
        event_data = json.loads(raw_body)
        event_id = event_data.get("id")
        event_type = event_data.get("type")

        if not event_id:
            return ResponseHelper.error("Invalid event data -- event id not found")

        logger.info("Stripe webhook %s (event_id=%s)", event_type, event_id)

        # check if event was already processed for idempotency
        if db.session.get(ProcessedWebhookEvent, event_id):
            return ResponseHelper.success("Event already processed")

        try:
            event = parse_stripe_event(event_data)

            if isinstance(event, AcknowledgedEvent):
                return ResponseHelper.success("OK")
            if not isinstance(event, (CheckoutCompletedEvent, SubscriptionEvent)):
                logger.info("Unhandled Stripe event type %s", event_type)
                return ResponseHelper.success("Event not handled")

            try:
                self._record(event)
            except IntegrityError:
                # a concurrent delivery committed first, either this event or one touching the same row
                db.session.rollback()
                if db.session.get(ProcessedWebhookEvent, event_id):
                    logger.info("Stripe event %s was processed concurrently", event_id)
                    return ResponseHelper.success("Event already processed")
                logger.info("Stripe event %s lost a concurrent write, retrying", event_id)
                self._record(event)

            return ResponseHelper.success("Event processed successfully")

        except IntegrityError:
            db.session.rollback()
            logger.error("Stripe event %s conflicted again on retry", event_id)
            return ResponseHelper.error("Failed to process event: conflicting concurrent update", 500)

        except ValidationError as e:
            db.session.rollback()
            logger.error("Stripe event %s has an unexpected payload: %s", event_id, e)
            return ResponseHelper.error("Failed to process event: malformed payload", 500)

        except Exception as e:
            db.session.rollback()
            logger.exception("Error processing Stripe event %s (%s)", event_id, event_type)
            return ResponseHelper.error(f"Failed to process event: {getattr(e, 'message', str(e))}", 500)

    def _record(self, event):
        """
        Write the entitlement and the processed-event marker in one commit.
        """
        db.session.add(ProcessedWebhookEvent(stripe_event_id=event.id, event_type=event.type))
        self._handle_event_by_type(event)
        db.session.commit()

    @staticmethod
    def _handle_event_by_type(event):
        """
        Route event to appropriate handler based on event type
        """
        if isinstance(event, CheckoutCompletedEvent):
            session = event.session
            EntitlementRecorder.on_checkout_completed(
                metadata=session.metadata,
                payment_customer_id=session.customer,
                amount_total=session.amount_total,
                provider_transaction_id=session.id,
            )
        elif event.deleted:
            EntitlementRecorder.on_subscription_deleted(event.subscription)
        else:
            EntitlementRecorder.on_subscription_changed(event.subscription)
