"""
API routes for the app
"""
import logging

from flask import Blueprint, current_app, request

from course_handler import CourseHandler
from errors import CourseMarketError, RateLimitExceeded, UpstreamFailure, UserNotFound, Unauthorized
from helpers import ResponseHelper
from identity_resolver import IdentityResolver
from user_access_handler import UserAccessHandler

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)


def _services():
    return current_app.extensions["course_market"]


def _current_identity():
    return _services().identity_provider.identify(request)


@api_bp.errorhandler(CourseMarketError)
def handle_course_market_error(e):
    response, status_code = ResponseHelper.error(e.message, e.status_code, **e.details)
    if isinstance(e, RateLimitExceeded):
        response.headers["Retry-After"] = str(e.retry_after)
    if status_code >= 500:
        logger.error("%s: %s", type(e).__name__, e.message)
    return response, status_code


@api_bp.route("/stripe/webhook", methods=["POST"])
def handle_stripe_webhook():
    """
    Stripe webhook endpoint, verified against the raw body
    """
    return _services().stripe_webhooks.handle(request.get_data(), request.headers)


@api_bp.route("/clerk-webhook", methods=["POST"])
def handle_clerk_webhook():
    """
    Clerk webhook endpoint, verified against the raw body
    """
    return _services().clerk_webhooks.handle(request.get_data(), request.headers)


@api_bp.route("/checkout/sessions", methods=["POST"])
def create_checkout_session():
    """
    Create a checkout session for the course in the body: {"course_id": 1}
    """
    identity = _current_identity()
    body = request.get_json(silent=True) or {}
    course_id = body.get("course_id")
    if not isinstance(course_id, int) or isinstance(course_id, bool):
        return ResponseHelper.error("course_id is required")

    session = _services().checkout.create_checkout_session(identity, course_id)
    if not session.checkout_url:
        raise UpstreamFailure("Failed to create checkout session")

    return ResponseHelper.success(session.to_dict())


@api_bp.route("/courses", methods=["GET"])
def list_courses():
    return ResponseHelper.success([course.to_dict() for course in CourseHandler.list_courses()])


@api_bp.route("/courses/<int:course_id>", methods=["GET"])
def get_course(course_id):
    return ResponseHelper.success(CourseHandler.get_course(course_id).to_dict())


@api_bp.route("/users/me", methods=["GET"])
def get_current_user():
    identity = _current_identity()
    if identity is None:
        raise Unauthorized()

    user = IdentityResolver.get_by_external_id(identity.external_id)
    if not user:
        raise UserNotFound()
    return ResponseHelper.success(user.to_dict())


@api_bp.route("/users/<int:user_id>/courses/<int:course_id>/access", methods=["GET"])
def get_user_access(user_id, course_id):
    """
    Get user access status for a course
    """
    decision = UserAccessHandler.has_access(_current_identity(), user_id, course_id)
    return ResponseHelper.success({"user_id": user_id, "course_id": course_id, **decision.to_dict()})


@api_bp.route("/users/<int:user_id>/subscription", methods=["GET"])
def get_user_subscription(user_id):
    subscription = UserAccessHandler.get_user_subscription(_current_identity(), user_id)
    return ResponseHelper.success(subscription.to_dict() if subscription else None)
