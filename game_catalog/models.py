from dataclasses import dataclass, field, fields
from typing import Any, TypedDict


@dataclass
class NamedRef:
    id: int
    name: str


@dataclass
class NormalizedGame:
    """A game record in the shape shared by every catalog source.

    Optional fields left as None are absent from ``to_dict()`` output.
    """
    id: int
    name: str
    summary: str | None = None
    cover: dict[str, str] | None = None
    genres: list[NamedRef] = field(default_factory=list)
    platforms: list[NamedRef] = field(default_factory=list)
    first_release_date: int | None = None
    rating: float | None = None
    screenshots: list[dict[str, str]] | None = None
    videos: list[dict[str, str]] | None = None
    similar_games: list["NormalizedGame"] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name in ("genres", "platforms"):
                value = [{"id": ref.id, "name": ref.name} for ref in value]
            elif f.name == "similar_games":
                value = [game.to_dict() for game in value]
            data[f.name] = value
        return data


@dataclass
class RecommendedGame(NormalizedGame):
    similarity_score: float = 0.0


@dataclass
class Checkpoint:
    offset: int = 0
    total_imported: int = 0


class StorePlatform(TypedDict):
    slug: str
    label: str


class ReviewData(TypedDict):
    summary: str | None
    percent: int | None
    count: int | None


class ScrapedListing(TypedDict):
    """A storefront search row before any cross-source normalization."""
    appid: int
    name: str
    header_image: str
    capsule_image: str
    url: str
    released: str | None
    review_summary: str | None
    review_percent: int | None
    review_count: int | None
    price_final: int | None
    price_original: int | None
    discount_percent: int | None
    platforms: list[StorePlatform]
    tag_ids: list[int]


class StorefrontSearchResult(TypedDict):
    listings: list[ScrapedListing]
    total_count: int
