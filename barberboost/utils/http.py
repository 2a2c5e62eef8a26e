from flask import current_app, jsonify, request

from barberboost.extensions import db
from barberboost.services.errors import PipelineError, ValidationError


def get_json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def require_fields(data, *fields):
    missing = [field for field in fields if not data.get(field)]
    if missing:
        raise ValidationError(f"Missing required parameters: {', '.join(missing)}")


def error_response(error):
    """Roll back the session and turn an exception into a JSON error body."""
    db.session.rollback()
    if isinstance(error, PipelineError):
        return jsonify(error.to_dict()), error.status_code

    current_app.logger.exception("Unhandled error in %s", request.path)
    return jsonify({
        'success': False,
        'error': str(error) or 'Internal server error'
    }), 500
