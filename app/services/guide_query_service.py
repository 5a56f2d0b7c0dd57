"""
Guide Query Service

Turns a reference instant and grid parameters into the per-channel listing
grid. Stateless: everything is computed from one listings snapshot per call.
"""
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
import logging

from app.config import settings
from app.exceptions import InvalidArgumentError
from app.services.listing_types import (
    ChannelInfo,
    ChannelListings,
    GuideGrid,
    ListingEntry,
    RawProgramme,
    Window,
)
from app.services.listings_store import ListingsStore, query_snapshot
from app.utils.timezone import (
    MINUTES_PER_DAY,
    add_minutes,
    align_to_slot,
    current_time,
    minutes_between,
)

logger = logging.getLogger(__name__)

HIGHLIGHTED_CATEGORIES = ("sports event", "news", "kids", "movie")
MOVIE_RATING_SYSTEM = "MPAA"
DEFAULT_RATING_SYSTEM = "VCHIP"


def get_guide_data(
    store: ListingsStore,
    now: datetime | None = None,
    slot_count: int = 3,
    slot_width: int = 30,
    lower_channel_limit: int | None = None,
    upper_channel_limit: int | None = None
) -> GuideGrid:
    """
    Get the listing grid for every channel across the current window

    Args:
        store: Listings store to read the current snapshot from
        now: Reference instant (defaults to the current time in the guide timezone)
        slot_count: Number of timeslots in the window
        slot_width: Minutes per timeslot, must evenly divide a day
        lower_channel_limit: Inclusive lower bound on channel display number
        upper_channel_limit: Exclusive upper bound on channel display number

    Returns:
        Window plus channels in presentation order with their clipped listings

    Raises:
        InvalidArgumentError: If the grid parameters are invalid
        NotReadyError: If the store has no snapshot yet
    """
    _validate_grid_arguments(slot_count, slot_width, lower_channel_limit, upper_channel_limit)

    if now is None:
        now = current_time(settings.guide_timezone)
    elif now.tzinfo is None:
        raise InvalidArgumentError("now must be timezone-aware")

    window = build_window(now, slot_width, slot_count)

    # One snapshot reference for the whole request
    snapshot = store.snapshot()

    limited = lower_channel_limit is not None or upper_channel_limit is not None
    channels = _resolve_channels(snapshot.channels, lower_channel_limit, upper_channel_limit)

    logger.debug(
        f"Guide request: window {window.start.isoformat()} to {window.end.isoformat()}, "
        f"{len(channels)} channels (limits: {lower_channel_limit} to {upper_channel_limit})"
    )

    candidates = query_snapshot(
        snapshot,
        window.start,
        window.end,
        channels.keys() if limited else None
    )

    grouped: dict[str, list[ListingEntry]] = {channel_id: [] for channel_id in channels}
    for programme in candidates:
        entries = grouped.get(programme.channel_id)
        if entries is None:
            continue

        entry = project_programme(programme, window)
        if entry is not None:
            entries.append(entry)

    result = tuple(
        ChannelListings(
            channel=channel,
            listings=tuple(sorted(grouped[channel_id], key=lambda e: e.start))
        )
        for channel_id, channel in channels.items()
    )

    grid = GuideGrid(window=window, channels=result)
    logger.info(f"Guide response: {len(result)} channels, {grid.total_listings} listings")
    return grid


def _validate_grid_arguments(
    slot_count: int,
    slot_width: int,
    lower_channel_limit: int | None,
    upper_channel_limit: int | None
) -> None:
    if slot_count < 1:
        raise InvalidArgumentError(f"Number of timeslots must be greater than 0, got {slot_count}")

    if slot_width < 1 or MINUTES_PER_DAY % slot_width != 0:
        raise InvalidArgumentError(
            f"Slot width must evenly divide {MINUTES_PER_DAY} minutes, got {slot_width}"
        )

    if (
        lower_channel_limit is not None
        and upper_channel_limit is not None
        and lower_channel_limit >= upper_channel_limit
    ):
        raise InvalidArgumentError(
            f"Lower channel limit ({lower_channel_limit}) must be below upper channel limit ({upper_channel_limit})"
        )


def build_window(now: datetime, slot_width: int, slot_count: int) -> Window:
    """
    Compute the grid window containing now

    Args:
        now: Reference instant (timezone-aware)
        slot_width: Minutes per timeslot
        slot_count: Number of timeslots

    Returns:
        Window starting at the latest slot boundary at or before now
    """
    start = align_to_slot(now, slot_width)
    end = add_minutes(start, slot_width * slot_count)
    return Window(start=start, end=end, slot_width=slot_width, slot_count=slot_count)


def _resolve_channels(
    index: Mapping[str, ChannelInfo],
    lower: int | None,
    upper: int | None
) -> dict[str, ChannelInfo]:
    """Filter the channel index by display number, keeping presentation order"""
    if lower is None and upper is None:
        return dict(index)

    return {
        channel_id: channel
        for channel_id, channel in index.items()
        if channel.display_number is not None
        and (lower is None or channel.display_number >= lower)
        and (upper is None or channel.display_number < upper)
    }


def clip_to_window(
    prog_start: datetime,
    prog_stop: datetime,
    window_start: datetime,
    window_end: datetime
) -> tuple[int, bool, bool]:
    """
    Clip a programme interval to the window

    Args:
        prog_start: True programme start
        prog_stop: True programme stop
        window_start: Window start (inclusive)
        window_end: Window end (exclusive)

    Returns:
        Tuple of (span in minutes, continued_left, continued_right)
    """
    # Compare instants, not wall-clock readings of a shared tzinfo
    prog_start, prog_stop, window_start, window_end = (
        dt.astimezone(timezone.utc) for dt in (prog_start, prog_stop, window_start, window_end)
    )

    if prog_stop > window_end and prog_start < window_start:
        return minutes_between(window_start, window_end), True, True

    if prog_stop < window_start or prog_start >= window_end:
        return 0, False, False

    continued_left = prog_start < window_start
    continued_right = prog_stop > window_end

    clipped_start = window_start if continued_left else prog_start
    clipped_stop = window_end if continued_right else prog_stop

    return max(0, minutes_between(clipped_start, clipped_stop)), continued_left, continued_right


def classify(
    categories: Iterable[str],
    ratings: Iterable[tuple[str, str]]
) -> tuple[str | None, str | None]:
    """
    Pick the highlighted category and the matching rating

    Args:
        categories: Programme category tags in feed order
        ratings: (rating system, value) pairs

    Returns:
        Tuple of (lower-cased category or None, rating or None)
    """
    category = next(
        (c.lower() for c in categories if c.lower() in HIGHLIGHTED_CATEGORIES),
        None
    )

    system = MOVIE_RATING_SYSTEM if category == "movie" else DEFAULT_RATING_SYSTEM
    rating = next((value for name, value in ratings if name == system), None)

    return category, rating


def project_programme(programme: RawProgramme, window: Window) -> ListingEntry | None:
    """
    Project one programme onto the window

    Returns:
        The listing entry, or None when nothing of it falls inside the window
    """
    span, continued_left, continued_right = clip_to_window(
        programme.start, programme.stop, window.start, window.end
    )
    if span <= 0:
        return None

    category, rating = classify(programme.categories, programme.ratings)

    return ListingEntry(
        channel_id=programme.channel_id,
        start=programme.start,
        span=span,
        continued_left=continued_left,
        continued_right=continued_right,
        title=programme.title,
        category=category,
        stereo=programme.stereo is not None,
        subtitled=programme.subtitles is not None,
        rating=rating
    )
