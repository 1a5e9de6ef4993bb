"""JSON envelopes shared by the API blueprints: ``{success, message, data | errors}``."""
from typing import Any, Dict, List, Optional, Tuple

from flask import Response, jsonify

ResponseWithStatus = Tuple[Response, int]


def _envelope(ok: bool, message: str, status_code: int, **payload: Any) -> ResponseWithStatus:
    return jsonify({'success': ok, 'message': message, **payload}), status_code


class APIResponse:

    @staticmethod
    def success(data: Any = None, message: str = "Success", status_code: int = 200) -> ResponseWithStatus:
        return _envelope(True, message, status_code, data=data)

    @staticmethod
    def error(message: str, errors: Optional[Any] = None, status_code: int = 400) -> ResponseWithStatus:
        """Failure body; ``errors`` is a field map or a list of row messages."""
        return _envelope(False, message, status_code, errors=errors or {})

    @classmethod
    def validation_error(cls, errors: Dict[str, List[str]]) -> ResponseWithStatus:
        return cls.error("Validation failed", errors=errors, status_code=422)

    @classmethod
    def forbidden(cls, message: str = "Access denied") -> ResponseWithStatus:
        return cls.error(message, status_code=403)

    @classmethod
    def conflict(cls, message: str) -> ResponseWithStatus:
        return cls.error(message, status_code=409)


__all__ = ['APIResponse']
