"""
Text-to-speech plugin.

Copies the record's speechText into tts_description_text as a single English
translation, with markup stripped.
"""

from enrichment.base import MatchedRecordPlugin
from enrichment.constants import ENGLISH
from enrichment.text import speech_to_text


class SpeechTextPlugin(MatchedRecordPlugin):
    def enrich_matched(self, alert, record) -> None:
        speech = record.properties.speech_text
        if not speech:
            return
        text = speech_to_text(speech)
        if not text:
            return

        alert.ClearField("tts_description_text")
        alert.tts_description_text.translation.add(text=text, language=ENGLISH)
