"""
Item description layout.

The <description> of every feed item is a sequence of HTML paragraphs:

    <p><strong>Store:</strong> Google Play</p>
    <p><strong>Version:</strong> 2.4.1</p>        (optional)
    <p><strong>Territory:</strong> US</p>         (optional)
    <p><strong>Device:</strong> Pixel 7 (Android 14)</p>   (optional)
    <p><strong>Author:</strong> Jane</p>
    <p>review body</p>

Labeled paragraphs start with a <strong> label. The body is the last
paragraph without one, so the writer must keep it last.
"""

import html
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

logger = logging.getLogger(__name__)

LABEL_STORE = "Store"
LABEL_VERSION = "Version"
LABEL_TERRITORY = "Territory"
LABEL_DEVICE = "Device"
LABEL_AUTHOR = "Author"


def _escape(text: Optional[str]) -> str:
    return html.escape(text or "").replace("\r", "&#13;")


@dataclass
class ParsedDescription:
    """Labeled values and the body recovered from one description."""
    labels: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    def get(self, label: str) -> Optional[str]:
        return self.labels.get(label)


def build_description(
    store: str,
    author: str,
    body: str,
    version: Optional[str] = None,
    territory: Optional[str] = None,
    device: Optional[str] = None
) -> str:
    """
    Render the description paragraphs for one item.

    Optional fields are omitted entirely when empty, so they decode
    back to None.
    """
    fields: List[Tuple[str, Optional[str]]] = [
        (LABEL_STORE, store),
        (LABEL_VERSION, version),
        (LABEL_TERRITORY, territory),
        (LABEL_DEVICE, device),
        (LABEL_AUTHOR, author),
    ]

    lines = []
    for label, value in fields:
        if label in (LABEL_STORE, LABEL_AUTHOR) or value:
            lines.append(f"<p><strong>{label}:</strong> {_escape(value)}</p>")

    lines.append(f"<p>{_escape(body)}</p>")
    return "\n".join(lines) + "\n"


def parse_description(description: Optional[str]) -> ParsedDescription:
    """
    Scan description paragraphs into labeled values and the body.

    Args:
        description: Raw description markup (already XML-unescaped)

    Returns:
        ParsedDescription; the first occurrence of a label wins and the
        body is the last unlabeled paragraph, HTML-unescaped
    """
    parsed = ParsedDescription()
    if not description:
        return parsed

    soup = BeautifulSoup(description, "html.parser")

    for paragraph in soup.find_all("p"):
        label = _paragraph_label(paragraph)

        if label is None:
            parsed.body = paragraph.get_text()
            continue

        if label in parsed.labels:
            logger.debug(f"Ignoring repeated '{label}' paragraph")
            continue

        parsed.labels[label] = _labeled_value(paragraph)

    return parsed


def _paragraph_label(paragraph: Tag) -> Optional[str]:
    """Return the paragraph's leading <strong> label, or None if unlabeled."""
    if not paragraph.contents:
        return None

    first = paragraph.contents[0]
    if not isinstance(first, Tag) or first.name != "strong":
        return None

    return first.get_text().strip().rstrip(":").strip()


def _labeled_value(paragraph: Tag) -> str:
    # Everything after the <strong> label, minus the single separator space
    value = "".join(
        node.get_text() if isinstance(node, Tag) else str(node)
        for node in paragraph.contents[1:]
    )
    return value[1:] if value.startswith(" ") else value
