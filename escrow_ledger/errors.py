from __future__ import annotations
# escrow_ledger/errors.py
"""
Error types for the escrow ledger. These are lightweight, serializable, and
safe to surface over RPC/logs.

Every failed ledger call raises exactly one of the categories below; the
call leaves no partial effect behind (see escrow_ledger.host.LedgerHost.atomic).

Exports:
- EscrowError (base)
- ValidationError
- AuthorizationError
- StateConflictError
- DeadlineError
- TransferFailed
- NotFoundError
"""


from typing import Any, Dict, Mapping, Optional
import json


class EscrowError(Exception):
    """Base class for escrow ledger domain errors."""

    code: str = "ESCROW_ERROR"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            # Keep this compact and stable for logs
            try:
                packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"))
            except (TypeError, ValueError):
                packed = str(self.details)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


class ValidationError(EscrowError):
    """
    Malformed create request: non-positive amount, empty recipient set,
    out-of-range percentage, percentages not summing to 100, too many recipients.
    """
    code = "ESCROW_VALIDATION"


class AuthorizationError(EscrowError):
    """The principal did not authorize the call, or is not allowed to make it."""
    code = "ESCROW_UNAUTHORIZED"

    def __init__(
        self,
        message: str = "not authorized",
        *,
        principal: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        if principal is not None:
            d.setdefault("principal", principal)
        super().__init__(message, details=d)


class StateConflictError(EscrowError):
    """The record is not in a state that permits the requested transition."""
    code = "ESCROW_STATE_CONFLICT"

    def __init__(
        self,
        message: str = "invalid state transition",
        *,
        escrow_id: Optional[int] = None,
        status: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        if escrow_id is not None:
            d.setdefault("escrow_id", int(escrow_id))
        if status is not None:
            d.setdefault("status", status)
        super().__init__(message, details=d)


class DeadlineError(StateConflictError):
    """Claim attempted after the deadline, or refund attempted before it."""
    code = "ESCROW_DEADLINE"

    def __init__(
        self,
        message: str = "deadline violation",
        *,
        escrow_id: Optional[int] = None,
        deadline: Optional[int] = None,
        now: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        if deadline is not None:
            d["deadline"] = int(deadline)
        if now is not None:
            d["now"] = int(now)
        super().__init__(message, escrow_id=escrow_id, details=d)


class TransferFailed(EscrowError):
    """The value transfer service refused to move funds."""
    code = "ESCROW_TRANSFER_FAILED"

    def __init__(
        self,
        message: str = "transfer failed",
        *,
        asset: Optional[str] = None,
        frm: Optional[str] = None,
        to: Optional[str] = None,
        amount: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        for k, v in (("asset", asset), ("from", frm), ("to", to), ("amount", amount)):
            if v is not None:
                d.setdefault(k, v)
        super().__init__(message, details=d)


class NotFoundError(EscrowError):
    """No escrow record exists for the given id."""
    code = "ESCROW_NOT_FOUND"

    def __init__(
        self,
        message: str = "escrow not found",
        *,
        escrow_id: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        if escrow_id is not None:
            d.setdefault("escrow_id", int(escrow_id))
        super().__init__(message, details=d)


__all__ = [
    "EscrowError",
    "ValidationError",
    "AuthorizationError",
    "StateConflictError",
    "DeadlineError",
    "TransferFailed",
    "NotFoundError",
]
