"""
Shared dataclasses used across the listings store and guide engine.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime

from app.utils.timezone import minutes_between


@dataclass(frozen=True, slots=True)
class ChannelInfo:
    """Channel identity with the display number and abbreviation derived from the feed."""
    channel_id: str
    display_number: int | None = None
    abbreviation: str | None = None


@dataclass(frozen=True, slots=True)
class RawProgramme:
    """A programme exactly as the feed describes it."""
    channel_id: str
    start: datetime
    stop: datetime
    title: str
    categories: tuple[str, ...] = ()
    stereo: str | None = None
    subtitles: str | None = None
    ratings: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True, slots=True)
class ListingsSnapshot:
    """One complete parse of the feed plus its channel index, never mutated."""
    programmes: tuple[RawProgramme, ...]
    channels: Mapping[str, ChannelInfo]
    source_digest: str
    loaded_at: datetime


@dataclass(frozen=True, slots=True)
class Window:
    """The [start, end) interval a guide request is evaluated against."""
    start: datetime
    end: datetime
    slot_width: int
    slot_count: int

    @property
    def length_minutes(self) -> int:
        return minutes_between(self.start, self.end)


@dataclass(frozen=True, slots=True)
class ListingEntry:
    """A programme projected onto a window."""
    channel_id: str
    start: datetime
    span: int
    continued_left: bool
    continued_right: bool
    title: str
    category: str | None = None
    stereo: bool = False
    subtitled: bool = False
    rating: str | None = None


@dataclass(frozen=True, slots=True)
class ChannelListings:
    channel: ChannelInfo
    listings: tuple[ListingEntry, ...]


@dataclass(frozen=True, slots=True)
class GuideGrid:
    window: Window
    channels: tuple[ChannelListings, ...]

    @property
    def total_listings(self) -> int:
        return sum(len(item.listings) for item in self.channels)


__all__ = [
    "ChannelInfo",
    "RawProgramme",
    "ListingsSnapshot",
    "Window",
    "ListingEntry",
    "ChannelListings",
    "GuideGrid",
]
