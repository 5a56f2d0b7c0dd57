from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.services.listing_types import ChannelListings, GuideGrid, ListingEntry


class CamelModel(BaseModel):
    """Base model serialized with camelCase field names"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ListingResponse(CamelModel):
    """Single programme projected onto the guide window"""
    start: str = Field(..., description="ISO8601 true (unclipped) start time")
    span: int = Field(..., description="Minutes of the programme inside the window")
    continued_left: bool = Field(..., description="Programme started before the window")
    continued_right: bool = Field(..., description="Programme ends after the window")
    title: str
    category: str | None = Field(None, description="One of 'sports event', 'news', 'kids', 'movie'")
    stereo: bool
    subtitled: bool
    rating: str | None = Field(None, description="MPAA rating for movies, VCHIP rating otherwise")

    @classmethod
    def from_entry(cls, entry: ListingEntry) -> "ListingResponse":
        return cls(
            start=entry.start.isoformat(),
            span=entry.span,
            continued_left=entry.continued_left,
            continued_right=entry.continued_right,
            title=entry.title,
            category=entry.category,
            stereo=entry.stereo,
            subtitled=entry.subtitled,
            rating=entry.rating
        )


class ChannelGuideResponse(CamelModel):
    """Guide row for one channel"""
    abbreviation: str | None = None
    display_number: int | None = None
    listings: list[ListingResponse] = Field(default_factory=list)

    @classmethod
    def from_channel_listings(cls, item: ChannelListings) -> "ChannelGuideResponse":
        return cls(
            abbreviation=item.channel.abbreviation,
            display_number=item.channel.display_number,
            listings=[ListingResponse.from_entry(entry) for entry in item.listings]
        )


class GuideResponse(CamelModel):
    """Guide grid response"""
    window_start: str = Field(..., description="ISO8601 start of the window (inclusive)")
    window_end: str = Field(..., description="ISO8601 end of the window (exclusive)")
    slot_count: int
    slot_width: int
    channels: dict[str, ChannelGuideResponse] = Field(..., description="Guide rows keyed by channel id, in presentation order")

    @classmethod
    def from_grid(cls, grid: GuideGrid) -> "GuideResponse":
        return cls(
            window_start=grid.window.start.isoformat(),
            window_end=grid.window.end.isoformat(),
            slot_count=grid.window.slot_count,
            slot_width=grid.window.slot_width,
            channels={
                item.channel.channel_id: ChannelGuideResponse.from_channel_listings(item)
                for item in grid.channels
            }
        )


class RefreshResponse(BaseModel):
    """Accepted refresh request, with the snapshot in effect at that moment"""
    status: str
    listings_loaded: bool
    loaded_at: str | None = None
    channels: int = 0
    programmes: int = 0
    source_digest: str | None = None


class ErrorDetail(BaseModel):
    """Standard error detail"""
    code: str = Field(..., description="Error code (e.g., 'NOT_READY', 'INVALID_ARGUMENT')")
    message: str = Field(..., description="Human-readable error message")
    context: dict | None = Field(None, description="Additional context about the error")


class StandardErrorResponse(BaseModel):
    """Standardized error response for all endpoints"""
    status: str = Field("error", description="Status indicator")
    timestamp: str = Field(..., description="ISO8601 timestamp of error")
    error: ErrorDetail = Field(..., description="Error details")
