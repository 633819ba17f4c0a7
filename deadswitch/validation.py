"""
Input validation for deadswitch.

Rejects degenerate will configurations before they reach the registry.
"""

import base64
import binascii
import re
from typing import Any, Optional

from . import config
from .errors import ValidationError
from .identity import Principal, same_identity

# Principal text: letters, digits and the separators used by common
# identity providers (dashes, dots, colons, @ and underscores).
PRINCIPAL_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._:@-]{0,127}$')
PAYOUT_ADDRESS_PATTERN = re.compile(r'^[\x21-\x7e]+$')


def validate_principal(value: Any, field_name: str) -> Principal:
    """
    Validate and wrap a principal text.

    Raises:
        ValidationError: If the text is malformed or names the anonymous identity
    """
    if isinstance(value, Principal):
        value = value.text
    if not isinstance(value, str):
        raise ValidationError(field_name, "must be a string")

    value = value.strip()
    if not PRINCIPAL_PATTERN.match(value):
        raise ValidationError(field_name, "invalid principal format")

    principal = Principal(value)
    if principal.is_anonymous():
        raise ValidationError(field_name, "must not be the anonymous identity")
    return principal


def validate_heartbeat_interval(value: Any, field_name: str = "heartbeat_interval") -> int:
    """
    Validate a heartbeat interval in seconds.

    Must be a positive integer within the configured bounds.
    """
    if isinstance(value, bool):
        raise ValidationError(field_name, "must be an integer")
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        raise ValidationError(field_name, "must be an integer")

    if seconds <= 0:
        raise ValidationError(field_name, "must be positive")
    if seconds < config.MIN_HEARTBEAT_SECONDS:
        raise ValidationError(field_name, f"must be at least {config.MIN_HEARTBEAT_SECONDS}")
    if seconds > config.MAX_HEARTBEAT_SECONDS:
        raise ValidationError(field_name, f"must not exceed {config.MAX_HEARTBEAT_SECONDS}")
    return seconds


def validate_payout_address(value: Any, field_name: str = "payout_address") -> str:
    """
    Check shape only. The address format belongs to the asset transfer
    service and is not interpreted here.
    """
    if not isinstance(value, str):
        raise ValidationError(field_name, "must be a string")
    value = value.strip()
    if not value:
        raise ValidationError(field_name, "cannot be empty")
    if len(value) > config.MAX_PAYOUT_ADDRESS_LENGTH:
        raise ValidationError(field_name, f"must not exceed {config.MAX_PAYOUT_ADDRESS_LENGTH} characters")
    if not PAYOUT_ADDRESS_PATTERN.match(value):
        raise ValidationError(field_name, "must be printable ASCII without spaces")
    return value


def validate_secret(value: Optional[bytes], field_name: str = "encrypted_secret") -> Optional[bytes]:
    if value is None:
        return None
    if not isinstance(value, (bytes, bytearray)):
        raise ValidationError(field_name, "must be bytes")
    if len(value) > config.MAX_SECRET_BYTES:
        raise ValidationError(field_name, f"must not exceed {config.MAX_SECRET_BYTES} bytes")
    return bytes(value)


def validate_beneficiary(owner: Principal, beneficiary: Principal) -> None:
    if same_identity(owner, beneficiary):
        raise ValidationError("beneficiary", "must differ from the owner")


def decode_base64_field(value: Optional[str], field_name: str) -> Optional[bytes]:
    """Decode an optional base64 request field."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(field_name, "must be a base64 string")
    try:
        return base64.b64decode(value.strip().encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError):
        raise ValidationError(field_name, "must be valid base64")
