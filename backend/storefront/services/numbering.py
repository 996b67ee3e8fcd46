"""Storefront: human-readable, collision-resistant document numbers (QUO-…, ORD-…)."""
import secrets
import string
import time

_ALPHABET = string.digits + string.ascii_uppercase


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_document_number(prefix: str) -> str:
    """PREFIX-<base36 epoch millis>-<4 random base36 chars>, e.g. QUO-MGX1Z2AB-7K3Q."""
    timestamp = _base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(4))
    return f"{prefix}-{timestamp}-{suffix}"


def quotation_number() -> str:
    return generate_document_number("QUO")


def order_number() -> str:
    return generate_document_number("ORD")
