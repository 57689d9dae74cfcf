"""
Helper functions for the app.
"""

from datetime import datetime, timezone

from flask import jsonify


class ResponseHelper:
    """
    Helper class for generating JSON responses.
    """

    @staticmethod
    def success(message, status_code=200):
        """
        Generate a success response.
        """
        if isinstance(message, (dict, list)) or message is None:
            return jsonify(message), status_code

        return jsonify({"message": message}), status_code

    @staticmethod
    def error(message, status_code=400, **extra):
        """
        Generate an error response.
        """
        return jsonify({"error": message, **extra}), status_code


class DateTimeNaiveHelper:
    """
    Helper class for converting between naive and timezone-aware datetimes.
    """

    @staticmethod
    def make_timezone_aware(dt):
        """Convert naive datetime to UTC timezone-aware datetime, since SQLAlchemy gives out naive datetimes by
        default."""
        if dt is None:
            return None
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt

    @staticmethod
    def from_timestamp(ts):
        """Unix seconds (as sent by Stripe) to a UTC datetime."""
        if ts is None:
            return None
        return datetime.fromtimestamp(int(ts), tz=timezone.utc)
