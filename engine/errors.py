"""
engine/errors.py
================

Error taxonomy for the scoring service.

Every error carries an HTTP ``status_code`` and a short machine-readable
``code`` so the Flask error handler in app.py can turn it into a JSON body
without knowing which engine component raised it. None of these are retried.
"""


class CricTallyError(Exception):
    """Base class for every error surfaced to a caller."""
    status_code = 500
    code = "error"

    def __init__(self, message=None, **details):
        self.message = message or (self.__class__.__doc__ or self.code).strip()
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        body = {"ok": False, "error": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

class ValidationError(CricTallyError):
    """Missing or malformed input."""
    status_code = 400
    code = "validation_error"


class ForbiddenError(CricTallyError):
    """Caller does not own this match."""
    status_code = 403
    code = "forbidden"


class NotFoundError(CricTallyError):
    """Requested resource does not exist."""
    status_code = 404
    code = "not_found"


class ConflictError(CricTallyError):
    """Operation is not valid in the current match state."""
    status_code = 409
    code = "conflict"


class DomainError(CricTallyError):
    """Squad or ledger rule violated."""
    status_code = 422
    code = "domain_error"


class InfrastructureError(CricTallyError):
    """Storage or cache unavailable."""
    status_code = 503
    code = "infrastructure_error"


# ---------------------------------------------------------------------------
# Named errors
# ---------------------------------------------------------------------------

class BatsmanRequired(ValidationError):
    """newBatsman is required after a wicket."""
    code = "batsman_required"


class MatchNotFound(NotFoundError):
    """Match not found."""
    code = "match_not_found"


class LiveStateMissing(NotFoundError):
    """No live state for this match."""
    code = "live_state_missing"


class MatchNotLive(ConflictError):
    """Match is not live."""
    code = "match_not_live"


class InvalidTransition(ConflictError):
    """Match status transition is not allowed."""
    code = "invalid_transition"


class InningsNotComplete(ConflictError):
    """Innings is not complete yet. Use forceEnd to end it early."""
    code = "innings_not_complete"


class InningsAlreadyComplete(ConflictError):
    """Innings is already complete. End the innings first."""
    code = "innings_already_complete"


class OpenersNotSet(ConflictError):
    """Striker, non-striker and bowler must be set before a delivery."""
    code = "openers_not_set"


class DuplicatePlayer(DomainError):
    """Player name appears more than once across the squads."""
    code = "duplicate_player"


class InvalidPlayer(DomainError):
    """Player is not part of either squad."""
    code = "invalid_player"


class AlreadyOut(DomainError):
    """Player is already out."""
    code = "already_out"


class InvalidBatsman(DomainError):
    """New batsman is not eligible."""
    code = "invalid_batsman"


class BatsmanAlreadyOut(DomainError):
    """New batsman is already out."""
    code = "batsman_already_out"


class MissingLedgerEntry(DomainError):
    """Player has no ledger entry."""
    code = "missing_ledger_entry"


class InvalidBowler(DomainError):
    """Bowler is not eligible."""
    code = "invalid_bowler"


class SameBowler(DomainError):
    """Same bowler cannot bowl consecutive overs."""
    code = "same_bowler"
