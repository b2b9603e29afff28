"""Point and submission business rules.

Pure validation helpers; both storage backends go through the same
DataService, so these are the only place the limits live.
"""

from __future__ import annotations

import itertools
import time
import uuid
from datetime import datetime

from ptracker.errors import ValidationError
from ptracker.gamification.schemas import ProblemCategory

BASE_SUBMISSION_POINTS = 1
BONUS_MIN = 1
BONUS_MAX = 10
MAX_IMAGES = 5

_id_sequence = itertools.count()

PLACEHOLDER_NAME = "Пользователь"

SUBMISSION_REASON = "Базовые баллы за проблему"
BONUS_REASON = "Бонус от администратора"


def new_id(prefix: str) -> str:
    """Generate a time-ordered record id such as ``problem_0192c4...``.

    Milliseconds since the epoch, then a process-wide sequence, then random
    bits. Ids made later in the same process sort after earlier ones, which
    is what both backends use to break ``created_at`` ties.
    """
    millis = int(time.time() * 1000)
    seq = next(_id_sequence) % 0x1000000
    return f"{prefix}_{millis:013x}{seq:06x}{uuid.uuid4().hex[:12]}"


def new_season_id(now: datetime) -> str:
    """Season identifier for a reset: ``season-<year>-<epoch ms>``."""
    return f"season-{now.year}-{int(now.timestamp() * 1000)}"


def is_usable_name(name: str | None) -> bool:
    """A name is usable unless it is empty, the placeholder, or an email."""
    if not name or not name.strip():
        return False
    return name != PLACEHOLDER_NAME and "@" not in name


def fallback_name(email: str) -> str:
    """Local part of the email, used when no usable name is known."""
    return email.split("@")[0]


def validate_positive_amount(amount: int) -> None:
    """Ledger grants must be positive integers."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        msg = f"Points amount must be a positive integer, got {amount!r}"
        raise ValidationError(msg)


def validate_bonus(bonus_points: int) -> None:
    """Bonus grants are limited to BONUS_MIN..BONUS_MAX."""
    validate_positive_amount(bonus_points)
    if not BONUS_MIN <= bonus_points <= BONUS_MAX:
        msg = f"Bonus points must be between {BONUS_MIN} and {BONUS_MAX}, got {bonus_points}"
        raise ValidationError(msg)


def validate_submission(
    title: str,
    description: str,
    category: str,
    images: list[str],
) -> ProblemCategory:
    """Validate a problem submission and return the parsed category."""
    if not title or not title.strip():
        raise ValidationError("Title is required")
    if not description or not description.strip():
        raise ValidationError("Description is required")
    if not category or not str(category).strip():
        raise ValidationError("Category is required")

    try:
        parsed = ProblemCategory(category)
    except ValueError as e:
        allowed = ", ".join(c.value for c in ProblemCategory)
        msg = f"Unknown category {category!r}. Allowed: {allowed}"
        raise ValidationError(msg) from e

    if len(images) > MAX_IMAGES:
        msg = f"At most {MAX_IMAGES} images per submission, got {len(images)}"
        raise ValidationError(msg)
    if any(not isinstance(img, str) or not img for img in images):
        raise ValidationError("Image references must be non-empty strings")

    return parsed


def validate_season_window(name: str, start: datetime, end: datetime) -> None:
    if not name or not name.strip():
        raise ValidationError("Season name is required")
    if end <= start:
        msg = f"Season end ({end.isoformat()}) must be after its start ({start.isoformat()})"
        raise ValidationError(msg)
