from __future__ import annotations

from typing import Final

import pandas as pd

from showtime_recommender.core.catalog import parse_release_date
from showtime_recommender.core.engine import ScoredMovie


class DataframeBuildError(RuntimeError):
    pass


RANKING_COLUMNS: Final[list[str]] = [
    "rank",
    "movie_id",
    "title",
    "score",
    "popularity_component",
    "new_release_component",
    "genre_match_component",
    "popularity_score",
    "release_date",
]


def build_ranking_df(scored: list[ScoredMovie]) -> pd.DataFrame:
    """One row per ranked movie, in rank order, with its score components.

    Notes:
        - `rank` is 1-based.
        - `release_date` is the parsed ISO date, or None when it couldn't be read.
    """

    rows: list[dict[str, object]] = []
    for rank, s in enumerate(scored, start=1):
        released = parse_release_date(s.movie.release_date)
        rows.append(
            {
                "rank": rank,
                "movie_id": s.movie.movie_id,
                "title": s.movie.title,
                "score": s.score,
                "popularity_component": s.popularity_component,
                "new_release_component": s.new_release_component,
                "genre_match_component": s.genre_match_component,
                "popularity_score": s.movie.popularity_score,
                "release_date": released.isoformat() if released else None,
            }
        )

    df = pd.DataFrame.from_records(rows, columns=RANKING_COLUMNS)
    validate_ranking_df(df)
    return df


def validate_ranking_df(df: pd.DataFrame) -> None:
    missing = set(RANKING_COLUMNS) - set(df.columns)
    if missing:
        raise DataframeBuildError(f"Missing columns: {sorted(missing)}")
