from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "SHOWTIME_RECOMMENDER_"

# Scoring weights for the home-screen ranking formula.
WEIGHT_POPULARITY = 0.5
WEIGHT_NEW_RELEASE = 0.3
WEIGHT_GENRE_MATCH = 0.2

NEW_RELEASE_WINDOW_DAYS = 7
NOW_SHOWING_WINDOW_DAYS = 60

# How many of the user's most-watched genres count towards the genre match.
TOP_GENRE_LIMIT = 5

# Genre match used when a user has no booking history yet.
COLD_START_GENRE_MATCH = 0.5


class ConfigError(ValueError):
    pass


def default_data_dir() -> Path:
    return Path(os.environ.get(f"{ENV_PREFIX}DATA_DIR", "data")).resolve()


def catalog_url() -> str | None:
    raw = os.environ.get(f"{ENV_PREFIX}CATALOG_URL", "").strip()
    return raw.rstrip("/") or None


def parse_csv_env(name: str) -> list[str]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return []

    # Support both comma-separated values and newline-separated values (common in PaaS).
    parts = [p.strip() for p in raw.replace("\n", ",").split(",")]
    return [p for p in parts if p]


@dataclass(frozen=True)
class RankingConfig:
    weight_popularity: float = WEIGHT_POPULARITY
    weight_new_release: float = WEIGHT_NEW_RELEASE
    weight_genre_match: float = WEIGHT_GENRE_MATCH
    new_release_window_days: int = NEW_RELEASE_WINDOW_DAYS
    now_showing_window_days: int = NOW_SHOWING_WINDOW_DAYS
    top_genre_limit: int = TOP_GENRE_LIMIT
    cold_start_genre_match: float = COLD_START_GENRE_MATCH

    def __post_init__(self) -> None:
        weights = (self.weight_popularity, self.weight_new_release, self.weight_genre_match)
        if any(w < 0 for w in weights):
            raise ConfigError("ranking weights must be >= 0")
        # Composite scores stay within [0, 1] only when the weights sum to one.
        if not math.isclose(sum(weights), 1.0, abs_tol=1e-9):
            raise ConfigError(f"ranking weights must sum to 1.0 (got {sum(weights):.4f})")

        if self.new_release_window_days < 0 or self.now_showing_window_days < 0:
            raise ConfigError("release windows must be >= 0 days")
        if self.top_genre_limit < 1:
            raise ConfigError("top_genre_limit must be >= 1")
        if not 0.0 <= self.cold_start_genre_match <= 1.0:
            raise ConfigError("cold_start_genre_match must be within [0, 1]")

    @classmethod
    def from_env(cls) -> RankingConfig:
        """Build a config, letting ``SHOWTIME_RECOMMENDER_*`` variables override defaults."""

        return cls(
            weight_popularity=_env_float("WEIGHT_POPULARITY", WEIGHT_POPULARITY),
            weight_new_release=_env_float("WEIGHT_NEW_RELEASE", WEIGHT_NEW_RELEASE),
            weight_genre_match=_env_float("WEIGHT_GENRE_MATCH", WEIGHT_GENRE_MATCH),
            new_release_window_days=_env_int("NEW_RELEASE_WINDOW_DAYS", NEW_RELEASE_WINDOW_DAYS),
            now_showing_window_days=_env_int("NOW_SHOWING_WINDOW_DAYS", NOW_SHOWING_WINDOW_DAYS),
            top_genre_limit=_env_int("TOP_GENRE_LIMIT", TOP_GENRE_LIMIT),
        )


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(f"{ENV_PREFIX}{name}", "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{ENV_PREFIX}{name} must be a number (got {raw!r})") from e


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(f"{ENV_PREFIX}{name}", "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer (got {raw!r})") from e
