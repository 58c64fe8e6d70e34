import logging

from formation_planner.log import configure_logging


def test_configure_logging_accepts_level_names(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.append(kw))

    configure_logging("debug")
    configure_logging(logging.WARNING)

    assert [c["level"] for c in calls] == [logging.DEBUG, logging.WARNING]
    assert "%(levelname)s" in calls[0]["format"]
