# --- crafthub/utils/api.py ---
from datetime import datetime, timezone

from flask import jsonify, request


def _server_time():
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

def api_ok(message, data=None):
    return {
        "status": True,
        "message": message,
        "data": {
            **(data or {}),
            "SERVER_TIME": _server_time(),
        }
    }

def api_error(message, data=None):
    return {
        "status": False,
        "message": message,
        "data": {
            **(data or {}),
            "SERVER_TIME": _server_time(),
        }
    }

# ---- standard API response format ------------------------------------------
def ok(msg, data=None, status=200):
    r = jsonify(api_ok(msg, data)); r.status_code = status; return r

def parse_body(schema):
    """Validate the JSON body against a pydantic model.

    Raises pydantic.ValidationError, which the app answers with a 422.
    """
    data = request.get_json(silent=True) or {}
    return schema.model_validate(data)
