"""Typed domain exceptions for the ticketing game.

Player-facing rule violations subclass GameRuleError so the message router
can convert them to session errors in one place. None of them end a play
session.
"""


class GameRuleError(Exception):
    """Base exception for actions the current session state does not allow."""


class InvalidPhaseError(GameRuleError):
    """Action is not valid in the session's current phase."""


class VerificationPendingError(GameRuleError):
    """A verification attempt arrived while the next code is still being issued."""


class NotEnoughSeatsError(GameRuleError):
    """Grid has fewer real seats than the number that must be opened."""


class InvalidNicknameError(GameRuleError):
    """Nickname is empty, too short, too long or contains control characters."""


class InvalidChatMessageError(GameRuleError):
    """Chat message is empty, too long or contains control characters."""


class NicknameRequiredError(GameRuleError):
    """Action needs a nickname and the session has none."""


class ResultAlreadySavedError(GameRuleError):
    """The finished play-through already has a persisted result record."""


class SaveInProgressError(GameRuleError):
    """A result save for this play-through has not completed yet."""


class NoSessionError(GameRuleError):
    """The connection has no live play session."""
