# voice_briefing.py
# ==============================================================================
# Voice Briefing — spoken summary of the current insights, synthesized by
# ElevenLabs with a browser speech-synthesis fallback
# ==============================================================================

import json
import logging

import requests

import config
from errors import TTSNotConfiguredError, TTSProviderError

logger = logging.getLogger(__name__)

TTS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"
OUTPUT_FORMAT = 'mp3_44100_128'
TTS_MODEL = 'eleven_turbo_v2_5'
VOICE_SETTINGS = {'stability': 0.7, 'similarity_boost': 0.75, 'speed': 1.0}
REQUEST_TIMEOUT = 30


def _fmt_number(value):
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _count_phrase(items):
    return f"{len(items)} product{'s are' if len(items) > 1 else ' is'}"


def build_briefing(insights) -> str:
    """Executive briefing text, or "" when there is nothing to report."""
    if not insights:
        return ""

    critical = [i for i in insights if i.get('status') == 'critical']
    at_risk = [i for i in insights if i.get('status') == 'at_risk']

    text = f"Executive briefing. {len(insights)} products analyzed. "
    if critical:
        names = ", ".join(i['product_name'] for i in critical)
        text += f"{_count_phrase(critical)} critical: {names}. "
    if at_risk:
        names = ", ".join(i['product_name'] for i in at_risk)
        text += f"{_count_phrase(at_risk)} at risk: {names}. "

    reorders = [i for i in insights if (i.get('recommended_order_qty') or 0) > 0]
    if reorders:
        text += "Recommended actions: "
        for r in reorders:
            text += (f"Reorder {_fmt_number(r['recommended_order_qty'])} units "
                     f"of {r['product_name']}. ")

    if not critical and not at_risk:
        text += "All products are healthy. No immediate action required."
    return text


class TTSClient:
    """ElevenLabs text-to-speech. One request per briefing, no retry."""

    def __init__(self, api_key=None, voice_id=None, session=None):
        self.api_key = api_key or config.elevenlabs_api_key()
        self.voice_id = voice_id or config.elevenlabs_voice_id()
        self.session = session or requests.Session()

    @property
    def is_configured(self):
        return bool(self.api_key)

    def synthesize(self, text) -> bytes:
        """Return MP3 audio for `text`.

        Raises:
            ValueError: empty text
            TTSNotConfiguredError: no API key (callers fall back to the browser)
            TTSProviderError: non-success reply or transport failure
        """
        if not text:
            raise ValueError("text is required")
        if not self.api_key:
            raise TTSNotConfiguredError("TTS not configured")

        url = TTS_URL.format(voice_id=self.voice_id)
        try:
            response = self.session.post(
                url,
                params={'output_format': OUTPUT_FORMAT},
                headers={'xi-api-key': self.api_key, 'Content-Type': 'application/json'},
                json={'text': text, 'model_id': TTS_MODEL, 'voice_settings': VOICE_SETTINGS},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            logger.error("ElevenLabs request failed: %s", e)
            raise TTSProviderError("TTS generation failed") from e

        if not response.ok:
            logger.error("ElevenLabs error: %s %s", response.status_code, response.text)
            raise TTSProviderError("TTS generation failed")

        logger.info("Synthesized %d bytes of briefing audio", len(response.content))
        return response.content


def browser_speech_html(text) -> str:
    """Snippet that speaks `text` with the browser's own speech synthesis."""
    return (
        "<script>\n"
        "window.speechSynthesis.cancel();\n"
        f"const utterance = new SpeechSynthesisUtterance({json.dumps(text)});\n"
        "window.speechSynthesis.speak(utterance);\n"
        "</script>"
    )
