# Overview: Request authentication and access decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .services import access_service, session_service
from .validation import coerce_int
from .errors import ValidationError


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'capabilities')


def require_auth(f):
    """
    Require a valid bearer session.

    Sets:
    - g.current_user: the authenticated User
    - g.capabilities: effective capability set (role-implied + grants)
    - g.session_context: the SessionContext
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.capabilities = access_service.get_user_capabilities(context.user)
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_capability(capability: str):
    """Require one capability from g.capabilities."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if capability not in g.capabilities:
                current_app.logger.warning(
                    "Capability denied: user=%s role=%s capability=%s path=%s",
                    g.current_user.id, g.current_user.role, capability, request.path,
                )
                return jsonify({
                    "error": "Forbidden",
                    "required_capability": capability,
                    "message": f"Missing capability: {capability}",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def resolve_shop_id(*, required: bool = False) -> int | None:
    """
    Shop id for a shop-scoped request.

    Taken from the JSON body on POST/PUT/PATCH, else from the shopId
    query parameter. Non-admin roles must always name a shop when
    `required` is set.
    """
    raw = None
    if request.method in ("POST", "PUT", "PATCH"):
        body = request.get_json(silent=True)
        if isinstance(body, dict):
            raw = body.get("shopId")
    if raw is None:
        raw = request.args.get("shopId")

    if raw is None or raw == "":
        if required and not access_service.is_admin(g.current_user):
            raise ValidationError("shopId is required")
        return None
    return coerce_int("shopId", raw)
