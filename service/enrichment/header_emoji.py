"""
Header emoji plugin.

Prefixes the English header with an emoji hint chosen by HEADER_RULES. Rules
are tried in order against the header and the cleaned description; the first
match wins and prefixes never stack.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from enrichment.base import AlertContext, EnrichmentPlugin
from enrichment.text import find_english
from google.transit import gtfs_realtime_pb2

Alert = gtfs_realtime_pb2.Alert

LIFT_PREFIX = "⛔️🛗 "
BUS_STOP_CLOSURE_PREFIX = "⛔️🚏 "
TRACKWORK_PREFIX = "🛠🛤 "
MAINTENANCE_PREFIX = "🛠 "
WEATHER_PREFIX = "🌨 "
DIVERSION_PREFIX = "🔀 "


@dataclass(frozen=True)
class HeaderRule:
    name: str
    prefix: str
    pattern: Optional[re.Pattern] = None
    predicate: Optional[Callable[[Alert, AlertContext], bool]] = None

    def matches(self, alert: Alert, context: AlertContext, text: str) -> bool:
        if self.pattern is not None and not self.pattern.search(text):
            return False
        if self.predicate is not None and not self.predicate(alert, context):
            return False
        return True


def _is_maintenance(alert: Alert) -> bool:
    return alert.cause == Alert.MAINTENANCE and alert.effect == Alert.MODIFIED_SERVICE


HEADER_RULES: Tuple[HeaderRule, ...] = (
    HeaderRule(
        "lift_unavailable",
        LIFT_PREFIX,
        pattern=re.compile(r"lift at .* (not available|out of service)", re.IGNORECASE),
    ),
    HeaderRule(
        "bus_stop_closure",
        BUS_STOP_CLOSURE_PREFIX,
        pattern=re.compile(r"bus stop closures?", re.IGNORECASE),
    ),
    HeaderRule(
        "trackwork",
        TRACKWORK_PREFIX,
        pattern=re.compile(r"trackwork may affect your travel", re.IGNORECASE),
    ),
    HeaderRule(
        "rail_maintenance",
        TRACKWORK_PREFIX,
        predicate=lambda alert, context: _is_maintenance(alert) and context.is_rail,
    ),
    HeaderRule(
        "maintenance",
        MAINTENANCE_PREFIX,
        predicate=lambda alert, context: _is_maintenance(alert),
    ),
    HeaderRule(
        "weather",
        WEATHER_PREFIX,
        predicate=lambda alert, context: alert.cause == Alert.WEATHER,
    ),
    HeaderRule(
        "diversion",
        DIVERSION_PREFIX,
        predicate=lambda alert, context: alert.effect in (Alert.MODIFIED_SERVICE, Alert.DETOUR),
    ),
)

_ALL_PREFIXES = tuple({rule.prefix.strip() for rule in HEADER_RULES})


def select_header_rule(alert: Alert, context: AlertContext, header: str) -> Optional[HeaderRule]:
    text = f"{header}\n{context.description_text}"
    for rule in HEADER_RULES:
        if rule.matches(alert, context, text):
            return rule
    return None


class HeaderEmojiPlugin(EnrichmentPlugin):
    def enrich(self, alert, context: AlertContext) -> None:
        if not alert.HasField("header_text"):
            return
        header = find_english(alert.header_text)
        if header is None:
            return

        header.text = header.text.strip()
        if header.text.startswith(_ALL_PREFIXES):
            return

        rule = select_header_rule(alert, context, header.text)
        if rule is not None:
            header.text = rule.prefix + header.text
