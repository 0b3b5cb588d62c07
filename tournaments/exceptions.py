"""Bracket engine error taxonomy."""


class BracketEngineError(Exception):
    """Base class for every error raised by the bracket engine."""

    kind = "engine"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# Input validation: rejected before any state change


class InputValidationError(BracketEngineError, ValueError):
    """Caller supplied invalid input; fix the input and resubmit."""

    kind = "validation"


class InsufficientParticipants(InputValidationError):
    """Fewer than two eligible participants."""


class InvalidSeeding(InputValidationError):
    """Manual seeding is not a bijection onto the roster."""


class InvalidScore(InputValidationError):
    """Scores are negative or tied."""


class UnsupportedFormat(InputValidationError):
    """No bracket strategy exists for the tournament format."""


class CapacityExceeded(InputValidationError):
    """Tournament roster is already full."""


class DuplicateParticipant(InputValidationError):
    """An entrant with the same name is already on the roster."""


# State conflicts: caller's view of the bracket is stale


class StateConflictError(BracketEngineError):
    """Action is structurally invalid for the current bracket state."""

    kind = "state_conflict"


class TournamentNotFound(StateConflictError):
    pass


class ParticipantNotFound(StateConflictError):
    pass


class MatchNotFound(StateConflictError):
    pass


class MatchNotPlayable(StateConflictError):
    """Match is in the wrong status or still waiting on a participant."""


class AlreadyInProgress(StateConflictError):
    """A bracket with played results already exists."""


class InvalidTournamentState(StateConflictError):
    """Tournament status does not allow the requested operation."""


class ConcurrencyConflict(BracketEngineError):
    """Another writer changed the same match or successor slot."""

    kind = "concurrency"
    retryable = True
