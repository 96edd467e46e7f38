from datetime import datetime
from decimal import Decimal, InvalidOperation

from rentledger_backend.errors import ValidationError


def is_missing(value):
    return value is None or (isinstance(value, str) and not value.strip())


def require(data, *fields):
    for field in fields:
        if is_missing(data.get(field)):
            raise ValidationError(f"{field} is required", field=field)


def parse_date(value, field):
    """Parse a ``YYYY-MM-DD`` string; ``None`` and blank values stay ``None``."""
    if is_missing(value):
        return None
    try:
        return datetime.strptime(str(value).strip(), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f"{field} must be in YYYY-MM-DD format", field=field)


def parse_amount(value, field):
    if is_missing(value):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a valid number", field=field)
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{field} must be a valid number", field=field)
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{field} must be a non-negative number", field=field)
    return amount


def parse_bool(value, field):
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in {"true", "false"}:
        return value.lower() == "true"
    raise ValidationError(f"{field} must be true or false", field=field)


def parse_id(value, field):
    if is_missing(value):
        raise ValidationError(f"{field} is required", field=field)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer id", field=field)


def json_object(payload):
    """Request body as a dict; an absent or unparsable body counts as empty."""
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")
    return payload
