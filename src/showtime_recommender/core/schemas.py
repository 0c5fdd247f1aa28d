from __future__ import annotations

from pydantic import BaseModel, Field


class MovieItem(BaseModel):
    movie_id: str
    title: str
    genres: list[str]
    release_date: str | None = None
    popularity_score: float = Field(ge=0)
    poster_url: str | None = None
    banner_url: str | None = None
    rating: float | None = None
    language: str | None = None
    duration: str | None = None
    certification: str | None = None


class MovieListResponse(BaseModel):
    city: str
    movies: list[MovieItem]


class HomeFeedResponse(BaseModel):
    city: str
    user_id: str | None = None
    banner: list[MovieItem]
    now_showing: list[MovieItem]
    new_releases: list[MovieItem]
    trending: list[MovieItem]
    recommended: list[MovieItem]


class ScoredMovieItem(BaseModel):
    movie: MovieItem
    score: float
    score_breakdown: dict[str, float]


class RankingResponse(BaseModel):
    city: str
    user_id: str | None = None
    ranking: list[ScoredMovieItem]


class GenresResponse(BaseModel):
    city: str
    genres: list[str]


class CountItem(BaseModel):
    name: str
    count: int = Field(ge=0)


class PreferencesResponse(BaseModel):
    user_id: str
    genre_counts: list[CountItem]
    top_genres: list[str]


class BookingRequest(BaseModel):
    genres: list[str] = Field(default_factory=list)
