"""Tests for the domain exception hierarchy."""

import pytest

from game.logic import exceptions
from game.logic.exceptions import GameRuleError


@pytest.mark.parametrize(
    "error_cls",
    [
        exceptions.InvalidPhaseError,
        exceptions.VerificationPendingError,
        exceptions.NotEnoughSeatsError,
        exceptions.InvalidNicknameError,
        exceptions.InvalidChatMessageError,
        exceptions.NicknameRequiredError,
        exceptions.ResultAlreadySavedError,
        exceptions.SaveInProgressError,
        exceptions.NoSessionError,
    ],
)
def test_rule_errors_share_base(error_cls):
    assert issubclass(error_cls, GameRuleError)
    with pytest.raises(GameRuleError, match="detail"):
        raise error_cls("detail")


def test_rule_error_is_not_value_error():
    """Router catches GameRuleError separately from payload validation failures."""
    assert not issubclass(GameRuleError, ValueError)
