"""Tests for settlebot/protocol.py - server message parser and commands."""
import json
import pytest

from settlebot.protocol import (
    Command,
    GameMsg,
    ResponseCode,
    ResponseMsg,
    UnknownMsg,
    build_command,
    build_commands,
    discard_command,
    join_command,
    move_bandit_command,
    parse_message,
    trade_command,
)

from tests.test_board import board_attrs, edge_attrs, node_attrs, tile_attrs
from tests.test_game_state import game_attrs, player_attrs


def response_line(code, additional_info="", is_error=False):
    return json.dumps({
        "model": "response",
        "attributes": {
            "code": code,
            "title": "title",
            "description": "description",
            "additional_info": additional_info,
            "is_error": is_error,
        },
    })


# ---------------------------------------------------------------------------
# Happy path tests
# ---------------------------------------------------------------------------

class TestParseGame:
    def test_parse_game_snapshot(self):
        raw = json.dumps({
            "model": "game",
            "attributes": game_attrs(
                players=[player_attrs(7, resources=["wood"])],
                board=board_attrs(
                    [tile_attrs("T1"), tile_attrs("T2")],
                    [node_attrs("N", "T1", "T2")],
                    [edge_attrs("(T1,T2)", road=True, player=7)],
                    bandit="T2",
                ),
            ),
        })
        result = parse_message(raw)
        assert isinstance(result, GameMsg)
        assert result.game.player(7).resources == {"wood": 1}
        assert result.game.board.edge("(T1,T2)").road is True
        assert result.game.board.bandit == "T2"

    def test_parse_game_without_board(self):
        raw = json.dumps({"model": "game", "attributes": game_attrs()})
        result = parse_message(raw)
        assert isinstance(result, GameMsg)
        assert result.game.board is None


class TestParseResponse:
    def test_parse_response(self):
        result = parse_message(response_line(101))
        assert isinstance(result, ResponseMsg)
        assert result.code == ResponseCode.BUILD_REQUEST
        assert result.title == "title"
        assert result.is_error is False

    def test_assigned_id(self):
        result = parse_message(response_line(1, "7"))
        assert result.assigned_id() == 7

    def test_assigned_id_not_numeric(self):
        result = parse_message(response_line(1, "seven"))
        with pytest.raises(ValueError):
            result.assigned_id()

    def test_null_additional_info(self):
        raw = json.dumps({"model": "response", "attributes": {"code": 0, "additional_info": None}})
        result = parse_message(raw)
        assert result.additional_info == ""

    def test_unknown_code_still_parses(self):
        result = parse_message(response_line(999))
        assert isinstance(result, ResponseMsg)
        assert result.code == 999


# ---------------------------------------------------------------------------
# Malformed input
# ---------------------------------------------------------------------------

class TestMalformedInput:
    def test_malformed_json(self):
        result = parse_message("{not json")
        assert isinstance(result, UnknownMsg)
        assert result.raw_data["error"] == "malformed_json"

    def test_deeply_nested_json(self):
        result = parse_message("[" * 100000 + "]" * 100000)
        assert isinstance(result, UnknownMsg)
        assert result.raw_data["error"] == "malformed_json"

    def test_non_dict_json(self):
        assert isinstance(parse_message("[1, 2, 3]"), UnknownMsg)

    def test_missing_model(self):
        assert isinstance(parse_message(json.dumps({"attributes": {}})), UnknownMsg)

    def test_unknown_model(self):
        result = parse_message(json.dumps({"model": "chat", "attributes": {"text": "hi"}}))
        assert isinstance(result, UnknownMsg)

    def test_response_without_code(self):
        raw = json.dumps({"model": "response", "attributes": {"title": "x"}})
        assert isinstance(parse_message(raw), UnknownMsg)

    def test_response_with_non_object_attributes(self):
        raw = json.dumps({"model": "response", "attributes": "oops"})
        assert isinstance(parse_message(raw), UnknownMsg)

    def test_game_with_duplicate_keys(self):
        board = board_attrs([tile_attrs("T1"), tile_attrs("T1")], [], [])
        raw = json.dumps({"model": "game", "attributes": game_attrs(board=board)})
        assert isinstance(parse_message(raw), UnknownMsg)

    def test_game_with_bad_player(self):
        raw = json.dumps({"model": "game", "attributes": game_attrs(players=[{"name": "no id"}])})
        assert isinstance(parse_message(raw), UnknownMsg)


# ---------------------------------------------------------------------------
# Outbound commands
# ---------------------------------------------------------------------------

class TestCommands:
    def test_join(self):
        cmd = join_command("settlebot")
        assert cmd.payload == {"model": "join", "attributes": {"id": -1, "name": "settlebot"}}

    def test_encode_is_one_terminated_json_line(self):
        data = build_commands([build_command("village", "N1")]).encode()
        assert data.endswith(b"\r\n")
        assert data.count(b"\n") == 1
        assert json.loads(data) == [{"structure": "village", "location": "N1"}]

    def test_empty_build_encodes_empty_array(self):
        assert build_commands([]).encode() == b"[]\r\n"

    def test_unknown_structure_rejected(self):
        with pytest.raises(ValueError):
            build_command("castle", "N1")

    def test_trade(self):
        assert trade_command("wood", "ore").payload == {"from": "wood", "to": "ore"}

    def test_move_bandit(self):
        assert move_bandit_command("T3").payload == {"location": "T3"}

    def test_discard_copies_resources(self):
        resources = {"wood": 2}
        cmd = discard_command(resources)
        resources["wood"] = 0
        assert cmd.payload == {"wood": 2}
        assert discard_command(None).payload == {}

    def test_command_kind(self):
        assert isinstance(trade_command("a", "b"), Command)
        assert trade_command("a", "b").kind == "trade"
