"""
Webhook payload schemas.

Stripe events are parsed into one variant per recognized kind: checkout
completion, subscription lifecycle, acknowledged no-ops, and a catch-all for
everything else. Only the fields the core reads are declared; the rest of the
provider payload is ignored.
"""
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

METADATA_COURSE_ID = "courseId"
METADATA_USER_ID = "userId"


class StripeEventType(Enum):
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    SUBSCRIPTION_CREATED = "customer.subscription.created"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"


# recognized, nothing to reconcile
ACKNOWLEDGED_EVENTS = frozenset([
    "charge.updated",
    "charge.succeeded",
    "payment_intent.succeeded",
    "payment_intent.created",
    "payment_intent.payment_failed",
    "payment_intent.canceled",
    "payment_intent.requires_action",
    "invoice.payment_succeeded",
    "invoice.payment_failed",
    "customer.created",
    "customer.updated",
    "customer.deleted",
])

HANDLED_EVENTS = frozenset(event_type.value for event_type in StripeEventType)


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CheckoutSessionObject(_Payload):
    id: str
    customer: Optional[str] = None
    amount_total: Optional[int] = None
    metadata: Dict[str, str] = Field(default_factory=dict)


class RecurringPrice(_Payload):
    interval: str


class Price(_Payload):
    recurring: Optional[RecurringPrice] = None


class SubscriptionItem(_Payload):
    price: Optional[Price] = None
    # newer API versions moved the period onto the item
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None


class SubscriptionItemList(_Payload):
    data: List[SubscriptionItem] = Field(default_factory=list)


class SubscriptionObject(_Payload):
    id: str
    customer: str
    status: str
    cancel_at_period_end: bool = False
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    items: SubscriptionItemList = Field(default_factory=SubscriptionItemList)

    @property
    def first_item(self):
        return self.items.data[0] if self.items.data else None

    @property
    def interval(self):
        item = self.first_item
        if item and item.price and item.price.recurring:
            return item.price.recurring.interval
        return None

    @property
    def period_start(self):
        if self.current_period_start is not None:
            return self.current_period_start
        return self.first_item.current_period_start if self.first_item else None

    @property
    def period_end(self):
        if self.current_period_end is not None:
            return self.current_period_end
        return self.first_item.current_period_end if self.first_item else None


class CheckoutCompletedEvent(BaseModel):
    id: str
    type: str
    session: CheckoutSessionObject


class SubscriptionEvent(BaseModel):
    id: str
    type: str
    subscription: SubscriptionObject

    @property
    def deleted(self):
        return self.type == StripeEventType.SUBSCRIPTION_DELETED.value


class AcknowledgedEvent(BaseModel):
    id: str
    type: str


class UnrecognizedEvent(BaseModel):
    id: str
    type: str


StripeEvent = Union[CheckoutCompletedEvent, SubscriptionEvent, AcknowledgedEvent, UnrecognizedEvent]


def parse_stripe_event(event_data) -> StripeEvent:
    """
    Turn a verified Stripe event dict into its variant.

    Raises pydantic.ValidationError when a handled kind is missing required fields.
    """
    event_id = event_data.get("id") or ""
    event_type = event_data.get("type") or ""
    data_object = (event_data.get("data") or {}).get("object") or {}

    if event_type == StripeEventType.CHECKOUT_SESSION_COMPLETED.value:
        return CheckoutCompletedEvent(id=event_id, type=event_type,
                                      session=CheckoutSessionObject.model_validate(data_object))
    if event_type in HANDLED_EVENTS:
        return SubscriptionEvent(id=event_id, type=event_type,
                                 subscription=SubscriptionObject.model_validate(data_object))
    if event_type in ACKNOWLEDGED_EVENTS:
        return AcknowledgedEvent(id=event_id, type=event_type)
    return UnrecognizedEvent(id=event_id, type=event_type)


class ClerkEmailAddress(_Payload):
    id: Optional[str] = None
    email_address: str


class ClerkUserData(_Payload):
    id: str
    email_addresses: List[ClerkEmailAddress] = Field(default_factory=list)
    primary_email_address_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def primary_email(self):
        for address in self.email_addresses:
            if address.id and address.id == self.primary_email_address_id:
                return address.email_address
        return self.email_addresses[0].email_address if self.email_addresses else None

    @property
    def full_name(self):
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
