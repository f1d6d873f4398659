"""Access codes: human-enterable, grouped, drawn from a CSPRNG.

The alphabet leaves out 0/O and 1/I. Codes are never recycled; each new
guest gets a freshly drawn value checked against every stored code.
"""
import logging
import re
import secrets
from typing import Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.errors import AccessCodeExhaustedError
from app.models.guest import Guest

logger = logging.getLogger(__name__)

SEPARATOR = "-"


def generate_access_code(
    alphabet: str = settings.ACCESS_CODE_ALPHABET,
    length: int = settings.ACCESS_CODE_LENGTH,
    group_size: int = settings.ACCESS_CODE_GROUP_SIZE,
) -> str:
    """Draw one code, e.g. ``K7QM-XD4P-9RTA``."""
    raw = "".join(secrets.choice(alphabet) for _ in range(length))
    return SEPARATOR.join(raw[i:i + group_size] for i in range(0, length, group_size))


def code_pattern(
    alphabet: str = settings.ACCESS_CODE_ALPHABET,
    length: int = settings.ACCESS_CODE_LENGTH,
    group_size: int = settings.ACCESS_CODE_GROUP_SIZE,
) -> re.Pattern:
    char = f"[{re.escape(alphabet)}]"
    groups = [f"{char}{{{min(group_size, length - i)}}}" for i in range(0, length, group_size)]
    return re.compile("^" + re.escape(SEPARATOR).join(groups) + "$")


def normalize_code(code: str) -> str:
    """Codes compare case-insensitively; surrounding whitespace is ignored."""
    return code.strip().upper()


def is_well_formed(code: str) -> bool:
    return bool(code_pattern().match(code))


def issue_access_code(db: Session, reserved: Optional[set[str]] = None) -> str:
    """Draw a code not used by any stored guest nor by ``reserved``.

    ``reserved`` holds codes handed out earlier in the same unit of work
    that are not flushed yet. The unique constraint on guests is the final
    guard.
    """
    reserved = reserved if reserved is not None else set()
    for attempt in range(1, settings.ACCESS_CODE_MAX_ATTEMPTS + 1):
        code = generate_access_code()
        if code in reserved:
            continue
        taken = db.query(Guest.guest_id).filter(Guest.access_code == code).first()
        if taken is None:
            reserved.add(code)
            return code
        logger.warning("Access code collision on attempt %d", attempt)
    raise AccessCodeExhaustedError(settings.ACCESS_CODE_MAX_ATTEMPTS)
