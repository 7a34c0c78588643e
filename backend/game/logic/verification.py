"""Human-verification challenge codes."""

from __future__ import annotations

import string
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import random

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6


def generate_code(rng: random.Random, length: int = CODE_LENGTH) -> str:
    return "".join(rng.choice(CODE_ALPHABET) for _ in range(length))


def code_matches(code: str, attempt: str) -> bool:
    """Compare an attempt to the code, ignoring case and surrounding whitespace."""
    return attempt.strip().upper() == code.upper()
