# tests/test_streamlit_app.py
# ==============================================================================
# Tests for the dashboard's trigger buttons and outcome notices
# ==============================================================================

import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import streamlit_app
from streamlit_app import finish_call, show_notice, trigger_button


class FakeSessionState(dict):
    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError as e:
            raise AttributeError(name) from e

    def __setattr__(self, name, value):
        self[name] = value


class FakeStreamlit:
    """Records buttons and notices instead of rendering them."""

    def __init__(self):
        self.session_state = FakeSessionState(in_flight=None, notices={})
        self.buttons = {}
        self.shown = []

    def button(self, label, key=None, on_click=None, args=(), disabled=False, **kwargs):
        self.buttons[key] = {'on_click': on_click, 'args': args, 'disabled': disabled}
        return False

    def click(self, key):
        button = self.buttons[key]
        button['on_click'](*button['args'])

    def success(self, text):
        self.shown.append(('success', text))

    def error(self, text):
        self.shown.append(('error', text))


@pytest.fixture
def fake_st(monkeypatch):
    fake = FakeStreamlit()
    monkeypatch.setattr(streamlit_app, 'st', fake)
    return fake


def render_triggers():
    return {
        'analysis': trigger_button("Analyze", 'analysis'),
        'coordination': trigger_button("Coordinate", 'coordination'),
        'briefing': trigger_button("Brief", 'briefing'),
    }


class TestTriggerButtons:
    def test_idle_buttons_enabled(self, fake_st):
        assert render_triggers() == {'analysis': False, 'coordination': False, 'briefing': False}
        assert not any(b['disabled'] for b in fake_st.buttons.values())

    def test_all_disabled_while_call_in_flight(self, fake_st):
        render_triggers()
        fake_st.click('trigger_analysis')
        runs = render_triggers()
        assert runs == {'analysis': True, 'coordination': False, 'briefing': False}
        assert all(b['disabled'] for b in fake_st.buttons.values())

    def test_finish_reenables(self, fake_st):
        render_triggers()
        fake_st.click('trigger_coordination')
        render_triggers()
        finish_call('coordination')
        assert not any(render_triggers().values())
        assert not any(b['disabled'] for b in fake_st.buttons.values())


class TestNotices:
    def test_notice_shown_once(self, fake_st):
        fake_st.session_state.in_flight = 'analysis'
        finish_call('analysis', ('error', "Rate limit reached"))
        show_notice('analysis')
        show_notice('analysis')
        assert fake_st.shown == [('error', "Rate limit reached")]

    def test_notices_are_per_trigger(self, fake_st):
        finish_call('analysis', ('success', "done"))
        show_notice('coordination')
        assert fake_st.shown == []
        show_notice('analysis')
        assert fake_st.shown == [('success', "done")]
