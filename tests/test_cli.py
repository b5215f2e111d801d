"""
Tests for the command line interface.
"""
import orjson
from typer.testing import CliRunner

from tenderscore import __version__
from tenderscore.cli.main import app
from tenderscore.core.queue import channel_for
from tenderscore.persistence.db import dispose_engines, get_session_scope, init_db
from tenderscore.persistence.repo import EventRepository

runner = CliRunner()

TENDER = {
    "id": 1,
    "title": "IT-drift og support for kommune",
    "body": "",
    "cpv_codes": ["72000000"],
}

PROFILE = {
    "id": 10,
    "name": "Acme",
    "is_own_profile": True,
    "minimum_requirements": ["IT"],
    "support_keywords": [{"keyword": "drift", "weight": 2}, {"keyword": "support", "weight": 1}],
    "negative_keywords": [{"keyword": "vedlikehold", "weight": -3}],
    "cpv_codes": [{"code": "7200", "weight": 1}],
}


def _files(tmp_path, tender=TENDER, profile=PROFILE):
    tender_file = tmp_path / "tender.json"
    profile_file = tmp_path / "profile.json"
    tender_file.write_bytes(orjson.dumps(tender))
    profile_file.write_bytes(orjson.dumps(profile))
    return tender_file, profile_file


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_score_json(tmp_path):
    tender_file, profile_file = _files(tmp_path)
    result = runner.invoke(
        app, ["evaluate", "score", "--tender", str(tender_file), "--profile", str(profile_file), "--json"]
    )
    assert result.exit_code == 0, result.output
    assert '"total_score": 4' in result.output
    assert '"qualified": true' in result.output


def test_score_disqualified(tmp_path):
    tender_file, profile_file = _files(tmp_path, tender={"id": 2, "title": "Snøbrøyting"})
    result = runner.invoke(app, ["evaluate", "score", "-t", str(tender_file), "-p", str(profile_file)])
    assert result.exit_code == 0, result.output
    assert "disqualified" in result.output
    assert "fails minimum requirement gate" in result.output


def test_score_invalid_input(tmp_path):
    tender_file, profile_file = _files(tmp_path)
    tender_file.write_text("{not json", encoding="utf-8")
    result = runner.invoke(app, ["evaluate", "score", "-t", str(tender_file), "-p", str(profile_file)])
    assert result.exit_code == 1


def test_jobs_events(tmp_path):
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"
    config_file = tmp_path / "app.yaml"
    config_file.write_text(
        f"database:\n  url: {db_url}\nlogging:\n  file: {tmp_path / 'cli.log'}\n",
        encoding="utf-8",
    )

    dispose_engines()
    try:
        init_db(db_url)
        with get_session_scope(db_url)() as session:
            events = EventRepository(session)
            events.record(7, channel_for(7), "evaluation_started", {"affected_profile_ids": [1]})
            events.record(7, channel_for(7), "evaluation_done", {"upserted_count": 2, "pruned_count": 0})
            events.record(8, channel_for(8), "evaluation_done", {"upserted_count": 0, "pruned_count": 1})

        result = runner.invoke(app, ["jobs", "events", "7", "-c", str(config_file)])
        assert result.exit_code == 0, result.output
        assert "eval:7" in result.output
        assert result.output.index("evaluation_started") < result.output.index("evaluation_done")

        result = runner.invoke(app, ["jobs", "events", "9", "-c", str(config_file)])
        assert result.exit_code == 0, result.output
        assert "No events on eval:9" in result.output
    finally:
        dispose_engines()
