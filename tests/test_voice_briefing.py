# tests/test_voice_briefing.py
# ==============================================================================
# Tests for the voice briefing — text composition and the ElevenLabs client
# ==============================================================================

import sys
import os

import pytest
import requests

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from errors import TTSNotConfiguredError, TTSProviderError
from voice_briefing import TTSClient, browser_speech_html, build_briefing


class FakeResponse:
    def __init__(self, status_code=200, content=b'ID3audio', text=''):
        self.status_code = status_code
        self.content = content
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.requests = []

    def post(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


class TestBuildBriefing:
    def test_empty(self):
        assert build_briefing([]) == ""

    def test_all_healthy(self):
        text = build_briefing([{'product_name': 'A', 'status': 'healthy'}])
        assert text == ("Executive briefing. 1 products analyzed. "
                        "All products are healthy. No immediate action required.")

    def test_critical_and_reorders(self):
        insights = [
            {'product_name': 'Mouse', 'status': 'critical', 'recommended_order_qty': 40.0},
            {'product_name': 'Hub', 'status': 'critical', 'recommended_order_qty': 0},
            {'product_name': 'Cable', 'status': 'at_risk', 'recommended_order_qty': 12.5},
        ]
        text = build_briefing(insights)
        assert text == ("Executive briefing. 3 products analyzed. "
                        "2 products are critical: Mouse, Hub. "
                        "1 product is at risk: Cable. "
                        "Recommended actions: Reorder 40 units of Mouse. "
                        "Reorder 12.5 units of Cable. ")

    def test_missing_quantity_skipped(self):
        text = build_briefing([{'product_name': 'A', 'status': 'at_risk',
                                'recommended_order_qty': None}])
        assert "Recommended actions" not in text


class TestTTSClient:
    def test_synthesize_posts_request(self):
        session = FakeSession()
        client = TTSClient(api_key='k', voice_id='voice1', session=session)
        assert client.synthesize("hello") == b'ID3audio'
        url, kwargs = session.requests[0]
        assert url == "https://api.elevenlabs.io/v1/text-to-speech/voice1"
        assert kwargs['params'] == {'output_format': 'mp3_44100_128'}
        assert kwargs['headers']['xi-api-key'] == 'k'
        assert kwargs['json']['model_id'] == 'eleven_turbo_v2_5'
        assert kwargs['json']['voice_settings'] == {
            'stability': 0.7, 'similarity_boost': 0.75, 'speed': 1.0}

    def test_empty_text(self):
        with pytest.raises(ValueError, match="text is required"):
            TTSClient(api_key='k', session=FakeSession()).synthesize("")

    def test_not_configured(self):
        client = TTSClient(session=FakeSession())
        assert not client.is_configured
        with pytest.raises(TTSNotConfiguredError, match="TTS not configured"):
            client.synthesize("hello")

    def test_provider_error(self):
        session = FakeSession(FakeResponse(status_code=401, text='bad key'))
        with pytest.raises(TTSProviderError, match="TTS generation failed"):
            TTSClient(api_key='k', session=session).synthesize("hello")

    def test_transport_error(self):
        session = FakeSession(error=requests.exceptions.ConnectionError("down"))
        with pytest.raises(TTSProviderError):
            TTSClient(api_key='k', session=session).synthesize("hello")

    def test_placeholder_key_is_unset(self, monkeypatch):
        monkeypatch.setenv('ELEVENLABS_API_KEY', 'your-elevenlabs-api-key-here')
        assert not TTSClient(session=FakeSession()).is_configured


class TestBrowserFallback:
    def test_text_is_escaped(self):
        html = browser_speech_html('He said "hi"')
        assert 'new SpeechSynthesisUtterance("He said \\"hi\\"")' in html
