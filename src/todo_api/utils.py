from __future__ import annotations

from typing import Any, Dict, Optional, Sequence


# PUBLIC_INTERFACE
def success_envelope(data: Any) -> Dict[str, Any]:
    """
    Build the standard success envelope.

    Args:
        data: The already-serializable payload of the response.

    Returns:
        Dict with keys: success (always True), data.
    """
    return {"success": True, "data": data}


# PUBLIC_INTERFACE
def error_envelope(
    code: str,
    message: str,
    details: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    Build the standard error envelope.

    Args:
        code: Stable machine-readable error code.
        message: Human readable message; never contains internal details.
        details: Optional list of "field: reason" strings. Omitted when empty.

    Returns:
        Dict with keys: success (always False), error {code, message, details?}.
    """
    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = list(details)
    return {"success": False, "error": error}
