from flask import Blueprint, current_app, jsonify

bp = Blueprint("main", __name__)


# Health check endpoint
@bp.route("/health")
def health():
    store_status = "not configured"
    if getattr(current_app, "record_store", None) is not None:
        store_status = "configured"

    clerk_status = "not initialized"
    if getattr(current_app, "clerk_client", None) is not None:
        clerk_status = "initialized"

    return (
        jsonify(
            {
                "status": "healthy",
                "message": "Check-in backend is running",
                "record_store": store_status,
                "clerk_sdk": clerk_status,
                "version": current_app.config.get("APP_VERSION", "unknown"),
                "environment": current_app.config.get("FLASK_ENV", "unknown"),
            }
        ),
        200,
    )


@bp.route("/")
def index():
    return jsonify(
        {
            "message": "Check-in backend API",
            "version": current_app.config.get("APP_VERSION", "unknown"),
        }
    )
