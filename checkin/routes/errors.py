from flask import current_app, jsonify

from checkin.exceptions import CheckInException


def handle_check_in_exception(e: CheckInException):
    if e.status_code >= 500:
        current_app.logger.error(f"{e.__class__.__name__}: {e.message}")
    else:
        current_app.logger.info(f"Rejected request ({e.status_code}): {e.message}")

    return jsonify({"error": e.message}), e.status_code


def register_error_handlers(app):
    app.register_error_handler(CheckInException, handle_check_in_exception)
