"""
Thin wrapper around the Stripe SDK.

The API key is passed on every call instead of being set on the `stripe`
module, so one process can hold exactly the gateway it was constructed with.
"""
import logging

import stripe

from errors import SignatureVerificationFailed, UpstreamFailure

logger = logging.getLogger(__name__)


class PaymentGateway:

    def __init__(self, api_key, webhook_secret):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def create_customer(self, email, name, metadata=None):
        """
        Create a Stripe customer and return its id.
        """
        try:
            customer = stripe.Customer.create(
                api_key=self.api_key,
                email=email or None,
                name=name or None,
                metadata=metadata or {},
            )
        except stripe.StripeError as e:
            logger.error("Stripe customer creation failed: %s", e)
            raise UpstreamFailure(f"Failed to create payment customer: {getattr(e, 'user_message', None) or e}")
        return customer.id

    def create_checkout_session(self, **params):
        """
        Create a Checkout Session, returns (session id, hosted url). The url can be None.
        """
        try:
            session = stripe.checkout.Session.create(api_key=self.api_key, **params)
        except stripe.StripeError as e:
            logger.error("Stripe checkout session creation failed: %s", e)
            raise UpstreamFailure(f"Failed to create checkout session: {getattr(e, 'user_message', None) or e}")
        return session.id, session.url

    def construct_event(self, payload, signature):
        """
        Verify the Stripe-Signature header over the raw payload bytes.
        """
        if not signature:
            raise SignatureVerificationFailed("Missing Stripe-Signature header")
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            raise SignatureVerificationFailed(f"Invalid payload: {e}")
        except stripe.SignatureVerificationError as e:
            raise SignatureVerificationFailed(f"Invalid signature: {e}")
