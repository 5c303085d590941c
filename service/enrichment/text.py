"""
Helpers for TranslatedString fields and the HTML fragments the upstreams embed in them.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup
from enrichment.constants import BULLET, ENGLISH
from google.transit import gtfs_realtime_pb2

_BLOCK_MARKUP_RE = re.compile(r"<\s*(div|p|br|ul|ol|li|table|tr|td|h[1-6])\b", re.IGNORECASE)


def is_html_translation(translation: gtfs_realtime_pb2.TranslatedString.Translation) -> bool:
    """True if tagged as HTML (e.g. "en/html") or carrying block/list markup."""
    if translation.language.lower().endswith("html"):
        return True
    return bool(_BLOCK_MARKUP_RE.search(translation.text))


def html_to_text(fragment: str) -> str:
    """Flatten an HTML fragment to plain text, prefixing list items with a bullet."""
    soup = BeautifulSoup(fragment, "html.parser")
    for item in soup.find_all("li"):
        if not item.get_text().lstrip().startswith(BULLET.strip()):
            item.insert(0, BULLET)
    return soup.get_text().strip()


def speech_to_text(speech: str) -> str:
    """Flatten the speechText markup, which may be bare text or a tag soup."""
    soup = BeautifulSoup(f"<tts>{speech}</tts>", "html.parser")
    return soup.tts.get_text().strip()


def find_english(
    text: gtfs_realtime_pb2.TranslatedString,
) -> Optional[gtfs_realtime_pb2.TranslatedString.Translation]:
    """
    Pick the plain English translation: "en" first, then an untagged one,
    then any "en-*" variant. HTML-tagged translations are never picked.
    """
    candidates = [t for t in text.translation if not t.language.lower().endswith("html")]
    for predicate in (
        lambda lang: lang == ENGLISH,
        lambda lang: lang == "",
        lambda lang: lang.startswith(ENGLISH),
    ):
        for translation in candidates:
            if predicate(translation.language.lower()):
                return translation
    return None
