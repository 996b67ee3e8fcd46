"""Storefront: API response helpers."""


def error_response(code: str, message: str, field_errors: list[dict] | None = None, meta: dict | None = None) -> dict:
    return {
        "data": None,
        "error": {
            "code": code,
            "message": message,
            "field_errors": field_errors or []
        },
        "meta": meta
    }
