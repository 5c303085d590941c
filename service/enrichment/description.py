"""
Description cleanup plugin.

Upstream descriptions arrive either as an HTML translation ("en/html", or
plain-tagged text full of <div>/<li> markup) or as plain text with stray
whitespace.

HTML policy: the HTML translation is replaced by a single plain "en"
translation; the markup original is not kept. Running the plugin on its own
output changes nothing.

Sets context.description_text to the cleaned English text for later rules.
"""

from enrichment.base import AlertContext, EnrichmentPlugin
from enrichment.constants import ENGLISH
from enrichment.text import find_english, html_to_text, is_html_translation


class DescriptionPlugin(EnrichmentPlugin):
    def enrich(self, alert, context: AlertContext) -> None:
        if not alert.HasField("description_text"):
            return
        description = alert.description_text

        html = next((t for t in description.translation if is_html_translation(t)), None)
        if html is not None:
            text = html_to_text(html.text)
            del description.translation[:]
            description.translation.add(text=text, language=ENGLISH)
        else:
            for translation in description.translation:
                translation.text = translation.text.strip()

        english = find_english(description)
        if english is None and description.translation:
            english = description.translation[0]
        context.description_text = english.text if english is not None else ""
