"""Error taxonomy shared by the cart server actions and the cart client."""

from typing import Any, Dict, Optional


class CartError(Exception):
    """Base class for cart failures.

    ``code`` is the stable machine-readable identifier carried in API error
    bodies; ``status_code`` is the HTTP status the server answers with.
    """

    code = "CART_ERROR"
    status_code = 500

    def __init__(self, message: str = "", *, context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.context = context or {}
        super().__init__(self.message)

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.context:
            body["context"] = self.context
        return {"error": body}


class Unauthenticated(CartError):
    """No resolved identity for an operation that requires one."""

    code = "UNAUTHENTICATED"
    status_code = 401


class NotFound(CartError):
    code = "NOT_FOUND"
    status_code = 404


class ValidationError(CartError):
    code = "INVALID_REQUEST"
    status_code = 400


class PersistenceFailure(CartError):
    """The relational store operation itself failed."""

    code = "PERSISTENCE_FAILURE"
    status_code = 500


class NetworkFailure(CartError):
    """The client could not reach the server (transport level)."""

    code = "NETWORK_FAILURE"
    status_code = 503


_BY_CODE = {
    cls.code: cls
    for cls in (Unauthenticated, NotFound, ValidationError, PersistenceFailure, NetworkFailure)
}


def from_response(status_code: int, payload: Any) -> CartError:
    """Rebuild the matching ``CartError`` from an API error body.

    Proxies may answer with bodies of another shape (a plain string error or a
    JSON list); those fall back to the status code.
    """
    err = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(err, str):
        err = {"message": err}
    elif not isinstance(err, dict):
        err = {}
    cls = _BY_CODE.get(err.get("code"))
    if cls is None:
        cls = Unauthenticated if status_code == 401 else CartError
    return cls(err.get("message") or f"HTTP {status_code}", context=err.get("context"))
