# Overview: Shared JSON error responses for route handlers.

from flask import current_app, jsonify

from ..extensions import db
from ..errors import DomainError


def domain_error(e: DomainError):
    """Roll back and render a service-layer failure."""
    db.session.rollback()
    return jsonify(e.to_dict()), e.status_code


def unexpected_error(message: str):
    """Roll back, log the traceback and hide details from the client."""
    db.session.rollback()
    current_app.logger.exception(message)
    return jsonify({"error": "InternalError", "message": "Internal server error"}), 500
