"""
Tests for the command-line entry point.
"""

import pytest

import stickies.__main__ as entry


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    monkeypatch.setattr(entry, "setup_logging", lambda: None)


def test_main_runs_app(monkeypatch):
    runs = []
    monkeypatch.setattr("stickies.ui.app.StickiesApp.run", lambda self: runs.append(self))

    assert entry.main([]) == 0
    assert len(runs) == 1


def test_main_returns_error_code_on_crash(monkeypatch):
    def crash(self):
        raise RuntimeError("boom")

    monkeypatch.setattr("stickies.ui.app.StickiesApp.run", crash)

    assert entry.main([]) == 1


def test_keyboard_interrupt_is_clean_exit(monkeypatch):
    def interrupt(self):
        raise KeyboardInterrupt

    monkeypatch.setattr("stickies.ui.app.StickiesApp.run", interrupt)

    assert entry.main([]) == 0
