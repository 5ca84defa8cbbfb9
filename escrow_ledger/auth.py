from __future__ import annotations
"""
Caller authorization for ledger calls.

The ledger never decides *how* a principal proves consent (signatures,
sessions, a host VM's auth entries); it only asks an AuthorizationOracle to
`require_auth(principal)` for the current call and aborts with
AuthorizationError when that fails.

Two in-process oracles are provided:

- AllowAllAuth: consents on behalf of everyone and records who was asked.
  Useful when exercising business rules in isolation.
- SignerAuth: consents only for principals that signed the current call,
  set with the `signing(...)` context manager:

      auth = SignerAuth()
      with auth.signing("alice"):
          ledger.approve(1)
"""


import threading
from contextlib import contextmanager
from typing import FrozenSet, Iterator, List, Protocol, runtime_checkable

from .errors import AuthorizationError


@runtime_checkable
class AuthorizationOracle(Protocol):
    def require_auth(self, principal: str) -> None: ...


class AllowAllAuth:
    """
    Test/devnet oracle: every principal is authorized. `requested` records
    each principal asked for, in order, and grows without bound until
    `clear()`; do not use it in a long-running process.
    """

    def __init__(self) -> None:
        self.requested: List[str] = []

    def require_auth(self, principal: str) -> None:
        self.requested.append(principal)

    def clear(self) -> None:
        self.requested.clear()


class SignerAuth:
    """Per-thread signer set; empty outside a `signing()` block."""

    def __init__(self) -> None:
        self._local = threading.local()

    @property
    def signers(self) -> FrozenSet[str]:
        return getattr(self._local, "signers", frozenset())

    @contextmanager
    def signing(self, *principals: str) -> Iterator[None]:
        prev = self.signers
        self._local.signers = prev | frozenset(principals)
        try:
            yield
        finally:
            self._local.signers = prev

    def require_auth(self, principal: str) -> None:
        if principal not in self.signers:
            raise AuthorizationError("principal did not authorize this call", principal=principal)


__all__ = ["AuthorizationOracle", "AllowAllAuth", "SignerAuth"]
