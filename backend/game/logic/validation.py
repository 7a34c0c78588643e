"""Local validation for player-supplied text. Rejected input never reaches a store."""

from game.logic.exceptions import InvalidChatMessageError, InvalidNicknameError
from shared.validators import has_control_characters

NICKNAME_MIN_LENGTH = 2
NICKNAME_MAX_LENGTH = 12
CHAT_MESSAGE_MAX_LENGTH = 200


def normalize_nickname(raw: str) -> str:
    """Strip surrounding whitespace and validate length and characters."""
    nickname = raw.strip()
    if not NICKNAME_MIN_LENGTH <= len(nickname) <= NICKNAME_MAX_LENGTH:
        raise InvalidNicknameError(
            f"nickname must be {NICKNAME_MIN_LENGTH}-{NICKNAME_MAX_LENGTH} characters, got {len(nickname)}",
        )
    if has_control_characters(nickname, allow_whitespace=False):
        raise InvalidNicknameError("nickname must not contain control characters")
    return nickname


def normalize_chat_message(raw: str) -> str:
    message = raw.strip()
    if not message:
        raise InvalidChatMessageError("message must not be empty")
    if len(message) > CHAT_MESSAGE_MAX_LENGTH:
        raise InvalidChatMessageError(f"message must be at most {CHAT_MESSAGE_MAX_LENGTH} characters")
    if has_control_characters(message):
        raise InvalidChatMessageError("message must not contain control characters")
    return message
