"""RSS 2.0 renderer for feed items."""
import logging
import re
import xml.etree.ElementTree as ET
from typing import Sequence

from processor.models import FeedItem

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

# Characters outside the XML 1.0 Char production
_INVALID_XML_CHARS = re.compile(
    '[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]'
)


def render(
    items: Sequence[FeedItem],
    channel_title: str,
    channel_description: str,
    channel_link: str
) -> str:
    """
    Serialize feed items into an RSS 2.0 document.

    Args:
        items: Feed items in output order
        channel_title: Channel <title>
        channel_description: Channel <description>
        channel_link: Channel <link>

    Returns:
        UTF-8 XML document as a string
    """
    rss = ET.Element('rss', {'version': '2.0'})
    channel = ET.SubElement(rss, 'channel')

    _add_text(channel, 'title', channel_title)
    _add_text(channel, 'description', channel_description)
    _add_text(channel, 'link', channel_link)

    for item in items:
        item_element = ET.SubElement(channel, 'item')
        for name, value in item.to_dict().items():
            if isinstance(value, list):
                for entry in value:
                    _add_text(item_element, name, entry)
            else:
                _add_text(item_element, name, value)

    ET.indent(rss, space='  ')
    body = ET.tostring(rss, encoding='unicode')

    logger.info(f"Rendered RSS feed with {len(items)} items")
    return f"{XML_DECLARATION}\n{body}\n"


def _add_text(parent: ET.Element, tag: str, text: str) -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = _INVALID_XML_CHARS.sub('', text or '')
    return element
