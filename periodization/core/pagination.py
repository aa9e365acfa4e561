import base64
import json
from typing import Any

from periodization.core.exceptions import ValidationError


def encode_cursor(value: Any, field: str) -> str:
    """Encode a cursor value to a base64 string."""
    data = json.dumps({"field": field, "value": value})
    return base64.urlsafe_b64encode(data.encode()).decode()


def decode_cursor(cursor: str) -> tuple[str, Any]:
    """Decode a base64 cursor string to field and value."""
    try:
        data = base64.urlsafe_b64decode(cursor.encode()).decode()
        decoded = json.loads(data)
        return decoded["field"], decoded["value"]
    except (ValueError, KeyError, TypeError):
        raise ValidationError("cursor", "Invalid cursor format")
