from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException
from flask_wtf.csrf import CSRFError
from ...extensions import db
from ...exceptions import MarketplaceError
from . import errors_bp


# Marketplace rule violations -> user-facing notice, nothing committed
@errors_bp.app_errorhandler(MarketplaceError)
def err_marketplace(e: MarketplaceError):
    db.session.rollback()
    current_app.logger.warning("%s on %s %s: %s", e.code, request.method, request.path, e.message)
    return jsonify(e.to_dict()), e.status_code

# 401 – Unauthorized
@errors_bp.app_errorhandler(401)
def err_401(e):
    return jsonify({"error": "unauthorized", "message": "Please sign in to continue."}), 401

# 404 – Not Found
@errors_bp.app_errorhandler(404)
def err_404(e):
    return jsonify({"error": "not_found", "message": f"Nothing at {request.path}."}), 404

# 405 – Method Not Allowed
@errors_bp.app_errorhandler(405)
def err_405(e):
    return jsonify({"error": "method_not_allowed", "message": e.description}), 405

# CSRF – typically treated as 400 Bad Request
@errors_bp.app_errorhandler(CSRFError)
def err_csrf(e):
    # e.description is human-readable
    return jsonify({"error": "csrf_failed", "message": e.description}), 400

# Fallback for uncaught HTTPException
@errors_bp.app_errorhandler(HTTPException)
def err_http(e: HTTPException):
    code = (e.name or "error").lower().replace(" ", "_")
    return jsonify({"error": code, "message": e.description}), e.code

# Last-resort: any other Exception
@errors_bp.app_errorhandler(Exception)
def err_unexpected(e):
    # if a DB action caused this, rollback so app isn’t stuck in bad transaction
    db.session.rollback()
    current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
    # Don’t leak internals, just a generic 500
    return jsonify({"error": "server_error", "message": "Something went wrong. Please try again."}), 500
