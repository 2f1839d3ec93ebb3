"""Error kinds raised by the ranking core and mapped to HTTP responses in app.py."""

from __future__ import annotations


class RankingError(Exception):
    """Base class for errors surfaced by stats and ranking operations."""

    status_code = 500

    def to_dict(self) -> dict:
        return {"error": str(self) or self.__class__.__name__, "kind": self.__class__.__name__}


class StoreUnavailable(RankingError):
    """A read or write against the result/user store failed."""

    status_code = 503


class InvalidSubmission(RankingError):
    """Submission payload rejected before anything was stored."""

    status_code = 400


class UserNotFound(RankingError):
    status_code = 404

    def __init__(self, user_id):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id
