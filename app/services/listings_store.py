"""
Listings Store

Owns the current parsed snapshot of the listings feed and answers
time-range/channel queries against it.

A snapshot is an immutable value that is replaced with a single reference
assignment, so readers always see a complete (programmes, channel index)
pair. Refreshes are serialized with a lock that readers never take.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Collection, Iterator, Mapping
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType

from lxml import etree # type: ignore

from app.config import settings
from app.exceptions import InvalidFormatError, NotReadyError, SourceUnavailableError
from app.services.listing_types import ChannelInfo, ListingsSnapshot, RawProgramme
from app.services.xmltv_parser_service import parse_xmltv_bytes
from app.utils.file_operations import content_digest, read_source_file
from app.utils.logging_helpers import log_refresh_end, log_refresh_start, log_snapshot_stats


logger = logging.getLogger(__name__)


class ListingsStore:
    """Live index over the listings file."""

    def __init__(self, source_path: Path | str):
        self.source_path = Path(source_path)
        self._snapshot: ListingsSnapshot | None = None
        self._refresh_lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return self._snapshot is not None

    def snapshot(self) -> ListingsSnapshot:
        """
        Get the snapshot currently in effect

        Raises:
            NotReadyError: If no refresh has ever succeeded
        """
        snapshot = self._snapshot
        if snapshot is None:
            raise NotReadyError("Listings have not been loaded yet")
        return snapshot

    def channel_index(self) -> Mapping[str, ChannelInfo]:
        """Channel id -> ChannelInfo in presentation order"""
        return self.snapshot().channels

    def query(
        self,
        time_from: datetime,
        time_to: datetime,
        channel_ids: Collection[str] | None = None
    ) -> Iterator[RawProgramme]:
        """
        Get programmes overlapping a time range

        A programme is excluded only if it ends strictly before time_from or
        starts strictly after time_to, so touching either boundary counts as
        overlap. Result order is unspecified.

        Args:
            time_from: Start of the range
            time_to: End of the range
            channel_ids: Optional set of channel ids to restrict to

        Returns:
            Lazy iterator over matching programmes

        Raises:
            NotReadyError: If no snapshot exists
        """
        return query_snapshot(self.snapshot(), time_from, time_to, channel_ids)

    def refresh(self) -> ListingsSnapshot:
        """
        Re-parse the source and install a new snapshot

        Returns:
            The newly installed snapshot

        Raises:
            SourceUnavailableError: If the source can't be read or parsed
            InvalidFormatError: If a programme timestamp is malformed
        """
        with self._refresh_lock:
            data = self._read_source()
            return self._install(data, content_digest(data))

    def refresh_if_changed(self) -> bool:
        """
        Refresh only when the source content differs from the current snapshot

        Safe to call redundantly; duplicate change signals are no-ops.

        Returns:
            True if a new snapshot was installed
        """
        with self._refresh_lock:
            data = self._read_source()
            digest = content_digest(data)

            current = self._snapshot
            if current is not None and current.source_digest == digest:
                logger.debug("Listings source unchanged (digest %s)", digest[:12])
                return False

            logger.info("Listings source changed, reloading")
            self._install(data, digest)
            return True

    def _read_source(self) -> bytes:
        try:
            return read_source_file(self.source_path)
        except OSError as exc:
            logger.error("Cannot read listings file %s: %s", self.source_path, exc)
            raise SourceUnavailableError(
                f"Cannot read listings file '{self.source_path}': {exc}"
            ) from exc

    def _install(self, data: bytes, digest: str) -> ListingsSnapshot:
        source = str(self.source_path)
        log_refresh_start(logger, source)

        try:
            channels, programmes = parse_xmltv_bytes(data)
        except etree.XMLSyntaxError as exc:
            logger.error("Listings refresh failed, keeping previous snapshot: %s", exc, exc_info=True)
            raise SourceUnavailableError(f"Cannot parse listings file '{source}': {exc}") from exc
        except InvalidFormatError as exc:
            logger.error("Listings refresh failed, keeping previous snapshot: %s", exc, exc_info=True)
            raise

        snapshot = ListingsSnapshot(
            programmes=tuple(programmes),
            channels=build_channel_index(channels),
            source_digest=digest,
            loaded_at=datetime.now(timezone.utc),
        )
        self._snapshot = snapshot

        log_snapshot_stats(logger, len(snapshot.channels), len(snapshot.programmes), digest)
        log_refresh_end(logger, source)
        return snapshot


def build_channel_index(channels: list[ChannelInfo]) -> Mapping[str, ChannelInfo]:
    """
    Build the read-only channel index in presentation order

    Channels are ordered by display number ascending; channels without a
    number come last. Ties keep feed order. Duplicate ids keep the first
    occurrence.

    Args:
        channels: Channels in feed order

    Returns:
        Read-only mapping of channel id -> ChannelInfo
    """
    unique: dict[str, ChannelInfo] = {}
    for channel in channels:
        if channel.channel_id in unique:
            logger.warning("Duplicate channel id %s in listings, keeping first", channel.channel_id)
            continue
        unique[channel.channel_id] = channel

    ordered = sorted(
        unique.values(),
        key=lambda c: (c.display_number is None, c.display_number or 0)
    )
    return MappingProxyType({channel.channel_id: channel for channel in ordered})


def query_snapshot(
    snapshot: ListingsSnapshot,
    time_from: datetime,
    time_to: datetime,
    channel_ids: Collection[str] | None = None
) -> Iterator[RawProgramme]:
    """Lazily yield programmes of one snapshot overlapping [time_from, time_to]"""
    for programme in snapshot.programmes:
        if channel_ids is not None and programme.channel_id not in channel_ids:
            continue
        if programme.stop < time_from or programme.start > time_to:
            continue
        yield programme


# Global singleton instance
_store: ListingsStore | None = None


def get_listings_store() -> ListingsStore:
    """
    Get or create the global listings store singleton.

    Returns:
        The global ListingsStore instance
    """
    global _store
    if _store is None:
        _store = ListingsStore(settings.listings_file)
    return _store


def reset_listings_store() -> None:
    """
    Reset the listings store (mainly for testing).

    WARNING: Only use this in test environments!
    """
    global _store
    _store = None
