from pathlib import Path
import logging
import re

from lxml import etree # type: ignore

from app.services.listing_types import ChannelInfo, RawProgramme
from app.utils.timezone import parse_xmltv_time

logger = logging.getLogger(__name__)

_CHANNEL_NUMBER_RE = re.compile(r'^\d+$')
_CHANNEL_ABBR_RE = re.compile(r'^[A-Z]+[A-Z0-9]*$')


def parse_xmltv_file(file_path: str | Path) -> tuple[list[ChannelInfo], list[RawProgramme]]:
    """
    Parse XMLTV file and return channels and programmes

    Args:
        file_path: Path to XMLTV file

    Returns:
        Tuple of (channels, programmes) in feed order

    Raises:
        etree.XMLSyntaxError: If XML is malformed
        OSError: If file can't be read
        InvalidFormatError: If a programme timestamp is malformed
    """
    return parse_xmltv_bytes(Path(file_path).read_bytes())


def parse_xmltv_bytes(data: bytes) -> tuple[list[ChannelInfo], list[RawProgramme]]:
    """
    Parse XMLTV document content

    Args:
        data: Raw XMLTV document

    Returns:
        Tuple of (channels, programmes) in feed order

    Raises:
        etree.XMLSyntaxError: If XML is malformed
        InvalidFormatError: If a programme timestamp is malformed
    """
    try:
        logger.debug("  Loading XML document...")
        root = etree.fromstring(data)
        logger.debug(f"  XML document loaded (root tag: {root.tag})")
    except etree.XMLSyntaxError as e:
        logger.error(f"  XML parsing error: {e}")
        raise

    logger.debug("  Extracting channels...")
    channels = _parse_channels(root)
    logger.debug(f"    Found {len(channels)} valid channels")

    logger.debug("  Extracting programmes...")
    programmes = _parse_programmes(root)
    logger.debug(f"    Found {len(programmes)} valid programmes")

    logger.info(f"XMLTV parsing complete: {len(channels)} channels, {len(programmes)} programmes")

    return channels, programmes


def _parse_channels(root: etree._Element) -> list[ChannelInfo]:
    """Extract channels from XMLTV root element"""
    channels = []

    for channel in root.findall('channel'):
        channel_id = channel.get('id')
        if not channel_id:
            logger.debug("Skipping channel with missing ID attribute")
            continue

        display_names = [_element_text(name) for name in channel.findall('display-name')]

        number = _first_match(display_names, _CHANNEL_NUMBER_RE)
        abbreviation = _first_match(display_names, _CHANNEL_ABBR_RE)

        channels.append(ChannelInfo(
            channel_id=channel_id,
            display_number=int(number) if number is not None else None,
            abbreviation=abbreviation
        ))

    return channels


def _parse_programmes(root: etree._Element) -> list[RawProgramme]:
    """Extract programmes from XMLTV root element"""
    programmes = []

    for programme in root.findall('programme'):
        parsed = _parse_single_programme(programme)
        if parsed:
            programmes.append(parsed)

    return programmes


def _parse_single_programme(programme: etree._Element) -> RawProgramme | None:
    """Parse single programme element"""
    # Malformed times abort the whole parse
    start_time = parse_xmltv_time(programme.get('start'))
    stop_time = parse_xmltv_time(programme.get('stop'))

    channel_id = programme.get('channel')
    title = _get_text(programme, 'title')

    if not channel_id or title is None:
        logger.debug(f"Skipping programme with missing channel or title (start={programme.get('start')})")
        return None

    if stop_time <= start_time:
        logger.warning(f"Skipping programme '{title}' on {channel_id}: stop is not after start")
        return None

    categories = tuple(
        text for text in (_element_text(c) for c in programme.findall('category')) if text
    )

    stereo_elem = programme.find('stereo')
    if stereo_elem is None:
        stereo_elem = programme.find('audio/stereo')
    stereo = _element_text(stereo_elem) if stereo_elem is not None else None

    subtitles_elem = programme.find('subtitles')
    subtitles = subtitles_elem.get('type') if subtitles_elem is not None else None

    ratings = []
    for rating in programme.findall('rating'):
        value = _get_text(rating, 'value')
        if value is not None:
            ratings.append((rating.get('system', ''), value))

    return RawProgramme(
        channel_id=channel_id,
        start=start_time,
        stop=stop_time,
        title=title,
        categories=categories,
        stereo=stereo,
        subtitles=subtitles,
        ratings=tuple(ratings)
    )


def _first_match(values: list[str], pattern: re.Pattern) -> str | None:
    """Return the first value matching the pattern"""
    for value in values:
        if pattern.match(value):
            return value
    return None


def _element_text(element: etree._Element) -> str:
    return (element.text or '').strip()


def _get_text(element: etree._Element, tag: str, default: str | None = None) -> str | None:
    """Safely extract text from XML element"""
    child = element.find(tag)
    if child is None or not child.text:
        return default
    return child.text.strip()
