# crud/errors.py
from typing import Optional


class ForumError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationFailed(ForumError):
    """Rejected before any mutation; shown inline by the UI."""
    status_code = 422


class NotFound(ForumError):
    status_code = 404


class NotAuthorized(ForumError):
    status_code = 403


class VoteConflict(ForumError):
    """Lost a same-voter race on the unique vote constraint. Re-read vote state and retry."""
    status_code = 409


class AlreadyConverted(ForumError):
    status_code = 409


class InconsistentState(ForumError):
    """A multi-step transition stopped halfway. Safe to retry; the remaining steps are idempotent."""
    status_code = 503

    def __init__(self, detail: str, orphaned_article_id: Optional[int] = None):
        super().__init__(detail)
        self.orphaned_article_id = orphaned_article_id
