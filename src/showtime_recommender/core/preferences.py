from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from showtime_recommender.core.config import TOP_GENRE_LIMIT, default_data_dir


class PreferenceStoreError(RuntimeError):
    pass


@dataclass(frozen=True)
class PreferenceProfile:
    """A user's genre history: genre name -> number of bookings in that genre.

    Genre names are matched case-insensitively. Dict insertion order is kept and
    decides ties between genres with the same count.
    """

    genre_counts: dict[str, int] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.top_genres(limit=1)

    def top_genres(self, limit: int = TOP_GENRE_LIMIT) -> list[str]:
        """Return up to ``limit`` genres by descending watch count.

        Zero-count genres are ignored, so a profile holding only zeros is a cold
        start. ``sorted`` is stable, so equal counts keep insertion order.
        """

        if limit < 1:
            return []
        watched = [
            (g, c)
            for g, c in self.genre_counts.items()
            if isinstance(c, (int, float)) and not isinstance(c, bool) and c > 0
        ]
        watched = sorted(watched, key=lambda kv: -kv[1])
        return [g for g, _ in watched[:limit]]

    def record_booking(self, genres: Iterable[str]) -> PreferenceProfile:
        """Return a new profile with each booked genre's count incremented by one."""

        updated = dict(self.genre_counts)
        by_folded = {g.casefold(): g for g in updated}
        for genre in genres:
            if not isinstance(genre, str) or not genre.strip():
                continue
            genre = genre.strip()
            key = by_folded.setdefault(genre.casefold(), genre)
            current = updated.get(key, 0)
            if not isinstance(current, int) or isinstance(current, bool):
                current = 0
            updated[key] = current + 1
        return PreferenceProfile(genre_counts=updated)


def profile_from_record(raw: Mapping[str, Any] | None) -> PreferenceProfile:
    """Tolerantly parse a ``preferredGenres`` map from the document store.

    Keys must be non-empty strings and counts non-negative integers; anything else
    is dropped.
    """

    if not raw:
        return PreferenceProfile()

    counts: dict[str, int] = {}
    for genre, count in raw.items():
        if not isinstance(genre, str) or not genre.strip():
            continue
        if isinstance(count, bool):
            continue
        if isinstance(count, float) and count.is_integer():
            count = int(count)
        if not isinstance(count, int) or count < 0:
            logger.debug("Dropping invalid watch count {!r} for genre {!r}", count, genre)
            continue
        counts[genre.strip()] = count
    return PreferenceProfile(genre_counts=counts)


def _preferences_path(user_id: str, *, data_dir: Path | None = None) -> Path:
    base = data_dir or default_data_dir()
    return base / "users" / user_id / "preferences.json"


def load_preferences(user_id: str, *, data_dir: Path | None = None) -> PreferenceProfile:
    """Load a user's persisted profile; a user without one gets the empty profile."""

    path = _preferences_path(user_id, data_dir=data_dir)
    if not path.exists():
        return PreferenceProfile()

    try:
        raw = json.loads(path.read_text())
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise PreferenceStoreError(f"Corrupt preferences for user '{user_id}'") from e

    if not isinstance(raw, dict):
        raise PreferenceStoreError(f"Corrupt preferences for user '{user_id}'")
    genres = raw.get("preferredGenres")
    if genres is not None and not isinstance(genres, Mapping):
        raise PreferenceStoreError(f"Corrupt preferences for user '{user_id}'")
    return profile_from_record(genres)


def persist_preferences(
    user_id: str, profile: PreferenceProfile, *, data_dir: Path | None = None
) -> Path:
    path = _preferences_path(user_id, data_dir=data_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"preferredGenres": profile.genre_counts}, indent=2) + "\n")
    return path


def record_booking(
    user_id: str, genres: list[str], *, data_dir: Path | None = None
) -> PreferenceProfile:
    """Increment the stored genre counts for a completed booking."""

    current = load_preferences(user_id, data_dir=data_dir)
    if not genres:
        return current

    updated = current.record_booking(genres)
    persist_preferences(user_id, updated, data_dir=data_dir)
    logger.info("Recorded booking genres {} for user {}", genres, user_id)
    return updated
