"""Tests for settlebot/game_logger.py - JSON-lines session log."""
import json

from settlebot import config
from settlebot.game_logger import GameLogger


def read_entries(directory):
    files = list(directory.glob("*.jsonl"))
    assert len(files) == 1
    return [json.loads(line) for line in files[0].read_text().splitlines()]


class TestGameLogger:
    def test_records_in_out_and_events(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config, "LOG_DIR", str(tmp_path))
        game_logger = GameLogger()
        game_logger.start_session("bot")
        game_logger.log_incoming("ResponseMsg", '{"model": "response"}')
        game_logger.log_outgoing("build", [{"structure": "village", "location": "N1"}])
        game_logger.log_protocol_event("unknown_message", "garbage")
        game_logger.end_session()

        entries = read_entries(tmp_path)
        assert [e["direction"] for e in entries] == ["meta", "in", "out", "event"]
        assert entries[0]["name"] == "bot"
        assert entries[2]["data"] == [{"structure": "village", "location": "N1"}]

    def test_unserializable_data_is_stringified(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config, "LOG_DIR", str(tmp_path))
        game_logger = GameLogger()
        game_logger.start_session()
        game_logger.log_outgoing("odd", {1, 2})
        game_logger.end_session()
        assert isinstance(read_entries(tmp_path)[1]["data"], str)

    def test_writes_without_session_are_ignored(self):
        game_logger = GameLogger()
        game_logger.log_incoming("x", "y")
        assert not game_logger.active

    def test_end_session_idempotent(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config, "LOG_DIR", str(tmp_path))
        game_logger = GameLogger()
        game_logger.start_session()
        game_logger.end_session()
        game_logger.end_session()
        assert not game_logger.active

    def test_unwritable_log_dir_disables_logging(self, tmp_path, monkeypatch):
        blocker = tmp_path / "file"
        blocker.write_text("")
        monkeypatch.setattr(config, "LOG_DIR", str(blocker / "logs"))
        game_logger = GameLogger()
        game_logger.start_session()
        assert not game_logger.active
