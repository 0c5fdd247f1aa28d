from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import httpx

from showtime_recommender.core.catalog import Movie, get_city_movies
from showtime_recommender.core.preferences import (
    PreferenceProfile,
    load_preferences,
    record_booking,
)


class CatalogSource(Protocol):
    def movies_for_city(self, city: str) -> list[Movie]: ...


class PreferenceSource(Protocol):
    def preferences_for(self, user_id: str | None) -> PreferenceProfile: ...

    def record_booking(self, user_id: str, genres: list[str]) -> PreferenceProfile: ...


@dataclass(frozen=True)
class DataDirCatalogSource:
    """Cached city catalogues under the data dir, fetched from the store when missing."""

    data_dir: Path | None = None
    client: httpx.Client | None = None

    def movies_for_city(self, city: str) -> list[Movie]:
        return get_city_movies(city, client=self.client, data_dir=self.data_dir)


@dataclass(frozen=True)
class DataDirPreferenceSource:
    data_dir: Path | None = None

    def preferences_for(self, user_id: str | None) -> PreferenceProfile:
        # Anonymous visitors rank as cold-start users.
        if not user_id:
            return PreferenceProfile()
        return load_preferences(user_id, data_dir=self.data_dir)

    def record_booking(self, user_id: str, genres: list[str]) -> PreferenceProfile:
        return record_booking(user_id, genres, data_dir=self.data_dir)


@dataclass(frozen=True)
class StaticCatalogSource:
    """In-memory catalogues keyed by lower-case city name."""

    movies_by_city: Mapping[str, list[Movie]] = field(default_factory=dict)

    def movies_for_city(self, city: str) -> list[Movie]:
        return list(self.movies_by_city.get(city.strip().lower(), []))


@dataclass
class StaticPreferenceSource:
    """In-memory profiles; bookings replace the stored profile for the user."""

    profiles: dict[str, PreferenceProfile] = field(default_factory=dict)

    def preferences_for(self, user_id: str | None) -> PreferenceProfile:
        if not user_id:
            return PreferenceProfile()
        return self.profiles.get(user_id, PreferenceProfile())

    def record_booking(self, user_id: str, genres: list[str]) -> PreferenceProfile:
        updated = self.preferences_for(user_id).record_booking(genres)
        self.profiles[user_id] = updated
        return updated
