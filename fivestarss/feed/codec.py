"""
Feed Codec.

Translates between ReviewItem lists and the RSS 2.0 document that is both
the public feed and the only persisted copy of the reviews.
"""

import html
import logging
import re
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import List, Optional

from fivestarss.feed.description import (
    LABEL_AUTHOR,
    LABEL_DEVICE,
    LABEL_TERRITORY,
    LABEL_VERSION,
    build_description,
    parse_description,
)
from fivestarss.models.review import (
    APP_STORE_TAG,
    GOOGLE_PLAY_TAG,
    MAX_RATING,
    MIN_RATING,
    MISSING_AUTHOR,
    SERVICE_ALERT_PREFIX,
    STORE_APP_STORE,
    STORE_GOOGLE_PLAY,
    STORE_SYSTEM,
    STORE_UNKNOWN,
    ReviewItem,
)

logger = logging.getLogger(__name__)

FILLED_STAR = "★"
EMPTY_STAR = "☆"

CHANNEL_TITLE_PREFIX = "App Reviews - "
CHANNEL_DESCRIPTION = "Latest app reviews"
CHANNEL_LANGUAGE = "en-us"

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'

# Characters XML 1.0 cannot carry; a single one would make the feed unreadable
_XML_ILLEGAL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def star_rating(rating: int) -> str:
    """Fixed-width star glyphs: filled for the rating, empty for the rest."""
    filled = max(MIN_RATING, min(MAX_RATING, rating))
    return FILLED_STAR * filled + EMPTY_STAR * (MAX_RATING - filled)


def format_pub_date(date: datetime) -> str:
    """RFC 1123 date in GMT, as RSS expects."""
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return format_datetime(date.astimezone(timezone.utc), usegmt=True)


def parse_pub_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 822/1123 date into aware UTC, or None if unparsable."""
    if not value or not value.strip():
        return None

    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError):
        return None

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def source_from_guid(guid: str) -> str:
    """Infer the store from the tag embedded in a review id."""
    if guid.startswith(SERVICE_ALERT_PREFIX):
        return STORE_SYSTEM
    if GOOGLE_PLAY_TAG in guid:
        return STORE_GOOGLE_PLAY
    if APP_STORE_TAG in guid:
        return STORE_APP_STORE
    return STORE_UNKNOWN


def split_title(raw_title: str):
    """
    Split an item title into (rating, display title).

    The rating is the number of filled stars in the leading glyph run,
    clamped to 0-5; the run and one following space are removed.
    """
    end = 0
    while end < len(raw_title) and raw_title[end] in (FILLED_STAR, EMPTY_STAR):
        end += 1

    rating = raw_title[:end].count(FILLED_STAR)
    rating = max(MIN_RATING, min(MAX_RATING, rating))

    rest = raw_title[end:]
    if end and rest.startswith(" "):
        rest = rest[1:]

    return rating, html.unescape(rest)


def _xml_safe(text: Optional[str]) -> str:
    return _XML_ILLEGAL_RE.sub("", text or "")


class FeedCodec:
    """
    Encodes ReviewItems into an RSS 2.0 document and decodes them back.

    Round-trips every record field for documents it wrote itself. The
    document holds at most max_items items, taken from the front of the
    input, so callers pass records already sorted newest-first.
    """

    def __init__(self, max_items: int = 100, link: str = "http://localhost:5000"):
        """
        Initialize feed codec.

        Args:
            max_items: Maximum <item> elements per document
            link: Channel <link> value
        """
        if max_items < 1:
            raise ValueError(f"max_items must be positive, got {max_items}")

        self.max_items = max_items
        self.link = link

    def encode(self, app_label: str, records: List[ReviewItem]) -> str:
        """
        Build the feed document for one app.

        Args:
            app_label: App display name, stored in the channel title
            records: Records in the order they should appear

        Returns:
            RSS 2.0 XML document as text
        """
        kept = records[:self.max_items]
        if len(records) > len(kept):
            logger.debug(
                f"Dropping {len(records) - len(kept)} records beyond the "
                f"{self.max_items}-item cap for '{app_label}'"
            )

        rss = ET.Element("rss", version="2.0")
        channel = ET.SubElement(rss, "channel")
        ET.SubElement(channel, "title").text = _xml_safe(f"{CHANNEL_TITLE_PREFIX}{app_label}")
        ET.SubElement(channel, "link").text = self.link
        ET.SubElement(channel, "description").text = CHANNEL_DESCRIPTION
        ET.SubElement(channel, "language").text = CHANNEL_LANGUAGE
        ET.SubElement(channel, "lastBuildDate").text = format_pub_date(datetime.now(timezone.utc))

        for record in kept:
            channel.append(self._encode_item(record))

        ET.indent(rss, space="  ")
        # XML parsers normalize raw carriage returns to newlines
        document = ET.tostring(rss, encoding="unicode").replace("\r", "&#13;")
        return f"{XML_DECLARATION}\n{document}\n"

    def decode(self, document: Optional[str]) -> List[ReviewItem]:
        """
        Recover ReviewItems from a feed document.

        A missing, empty or malformed document yields an empty list:
        feeds that do not exist yet are expected on the first run.
        """
        if not document or not document.strip():
            return []

        try:
            root = ET.fromstring(document)
        except ET.ParseError as e:
            logger.error(f"Failed to parse feed document: {e}")
            return []

        app_label = self._channel_app_label(root)

        records = []
        for item in root.iter("item"):
            try:
                record = self._decode_item(item, app_label)
            except ValueError as e:
                logger.warning(f"Skipping undecodable feed item: {e}")
                continue

            if record is not None:
                records.append(record)

        return records

    def _encode_item(self, record: ReviewItem) -> ET.Element:
        item = ET.Element("item")

        ET.SubElement(item, "title").text = _xml_safe(
            f"{star_rating(record.rating)} {html.escape(record.title or '')}"
        )
        ET.SubElement(item, "description").text = _xml_safe(
            build_description(
                store=record.source,
                author=record.author,
                body=record.body,
                version=record.version,
                territory=record.territory,
                device=record.device
            )
        )
        ET.SubElement(item, "pubDate").text = format_pub_date(record.date)
        ET.SubElement(item, "guid", isPermaLink="false").text = _xml_safe(record.id)

        return item

    def _decode_item(self, item: ET.Element, app_label: Optional[str]) -> Optional[ReviewItem]:
        guid = (item.findtext("guid") or "").strip()
        if not guid:
            logger.warning("Skipping feed item without a guid")
            return None

        rating, title = split_title(item.findtext("title") or "")
        parsed = parse_description(item.findtext("description"))

        pub_date = item.findtext("pubDate")
        date = parse_pub_date(pub_date)
        if date is None:
            logger.warning(
                f"Unparsable pubDate '{pub_date}' for item {guid}, using current time"
            )
            date = datetime.now(timezone.utc).replace(microsecond=0)

        return ReviewItem(
            id=guid,
            title=title,
            body=parsed.body,
            rating=rating,
            author=parsed.get(LABEL_AUTHOR) or MISSING_AUTHOR,
            date=date,
            app_name=app_label if app_label is not None else title,
            source=source_from_guid(guid),
            version=parsed.get(LABEL_VERSION) or None,
            territory=parsed.get(LABEL_TERRITORY) or None,
            device=parsed.get(LABEL_DEVICE) or None
        )

    @staticmethod
    def _channel_app_label(root: ET.Element) -> Optional[str]:
        channel_title = root.findtext("channel/title")
        if channel_title and channel_title.startswith(CHANNEL_TITLE_PREFIX):
            return channel_title[len(CHANNEL_TITLE_PREFIX):]
        return None
