"""Sentinel stripping for profiles produced by the extraction service."""

import logging
from collections.abc import Iterable

from trial_scout.core.config import DEFAULT_SENTINELS
from trial_scout.core.schemas import Profile

logger = logging.getLogger(__name__)

PROFILE_GENDERS = frozenset({"male", "female", "non-binary", "unknown"})

MAX_AGE = 130


class ProfileNormalizer:
    """Replaces placeholder values ("unknown", "<unknown>", ...) with absence.

    Never raises; the worst case is a profile with every optional field absent.
    """

    def __init__(self, sentinels: Iterable[str] | None = None) -> None:
        tokens = sentinels if sentinels is not None else DEFAULT_SENTINELS
        self._sentinels = frozenset(t.lower().strip() for t in tokens if t.strip())

    def is_sentinel(self, value: str | None) -> bool:
        """True for None, blank, a sentinel token, or an <angle-bracketed> placeholder."""
        if value is None:
            return True
        text = value.strip().lower()
        if not text:
            return True
        if text.startswith("<") and text.endswith(">"):
            return True
        return text in self._sentinels

    def clean(self, value: str | None) -> str | None:
        if self.is_sentinel(value):
            return None
        return value.strip()  # type: ignore[union-attr]

    def normalize(self, profile: Profile) -> Profile:
        gender = self.clean(profile.gender)
        gender = gender.lower() if gender else "unknown"
        if gender not in PROFILE_GENDERS:
            logger.debug("Unrecognized gender '%s' for %s", gender, profile.campaign_url)
            gender = "unknown"

        age = profile.age
        if age is not None and not 0 <= age <= MAX_AGE:
            age = None

        return profile.model_copy(update={
            "name": self.clean(profile.name),
            "organizer_name": self.clean(profile.organizer_name),
            "location": self.clean(profile.location),
            "gender": gender,
            "age": age,
            "conditions": [c.strip() for c in profile.conditions if not self.is_sentinel(c)],
        })
