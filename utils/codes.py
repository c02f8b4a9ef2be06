import random
import string
from typing import Callable

from config import (
    CODE_GENERATION_MAX_ATTEMPTS,
    ENTRY_CODE_LENGTH,
    ENTRY_CODE_PREFIX,
    ROOM_CODE_LENGTH,
)

CODE_CHARSET = string.ascii_uppercase + string.digits


class CodeGenerationError(RuntimeError):
    pass


def generate_room_code() -> str:
    """Return a random uppercase alphanumeric room code."""
    return ''.join(random.choices(CODE_CHARSET, k=ROOM_CODE_LENGTH))


def generate_entry_code() -> str:
    """Return a random entry code such as C-7Q2XK."""
    return ENTRY_CODE_PREFIX + ''.join(random.choices(CODE_CHARSET, k=ENTRY_CODE_LENGTH))


def get_unique_code(
    generate: Callable[[], str],
    is_taken: Callable[[str], bool],
    max_attempts: int = CODE_GENERATION_MAX_ATTEMPTS,
) -> str:
    """
    Return a code that `is_taken` reports as free.
    Raises CodeGenerationError if no unique code can be generated after several attempts.
    """
    for _ in range(max_attempts):
        code = generate()
        if not is_taken(code):
            return code

    raise CodeGenerationError(
        "Unable to generate a unique code. Please try again shortly."
    )
