"""Identity resolution for inbound requests.

Authentication itself lives outside this service. A resolver turns a
request into an Identity, or None when the caller is unauthenticated.
"""
import logging
from dataclasses import dataclass
from typing import Protocol

from fastapi import Request

from brokerage_ledger.services.ledger_queries import LedgerQueryService

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"


@dataclass(frozen=True)
class Identity:
    user_id: int
    email: str


class IdentityResolver(Protocol):
    """Protocol for objects that resolve the caller of a request."""

    def resolve(self, request: Request) -> Identity | None:
        """Return the caller's identity, or None if unauthenticated."""
        ...


class HeaderIdentityResolver:
    """Trusts the user id an authenticating gateway puts in ``X-User-Id``.

    Only deploy behind a gateway that strips client-supplied copies of the
    header.
    """

    def __init__(self, queries: LedgerQueryService, header: str = USER_ID_HEADER) -> None:
        self._queries = queries
        self._header = header

    def resolve(self, request: Request) -> Identity | None:
        raw = request.headers.get(self._header)
        if not raw:
            return None
        try:
            user_id = int(raw)
        except ValueError:
            logger.debug("Ignoring non-numeric %s header: %r", self._header, raw)
            return None
        user = self._queries.find_user(user_id)
        if user is None:
            return None
        return Identity(user_id=user.id, email=user.email)
