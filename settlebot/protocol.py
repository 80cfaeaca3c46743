"""Game server wire protocol: message parser and command encoders.

Every line on the socket is one JSON envelope:
  {"model": <string>, "attributes": <value>}

Inbound models:
  "game"     - full game snapshot (board, players, turn metadata)
  "response" - {code, title, description, additional_info, is_error};
               the code asks us for a move, see ResponseCode

Outbound:
  "join" envelope once per connection, then bare command payloads:
  build lists, trade, bandit move and discard objects.
"""
import json
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional

from settlebot.config import (
    LINE_TERMINATOR,
    MODEL_GAME,
    MODEL_JOIN,
    MODEL_RESPONSE,
    RESPONSE_BUILD_REQUEST,
    RESPONSE_FORCE_DISCARD_REQUEST,
    RESPONSE_ID_ACKNOWLEDGMENT,
    RESPONSE_INITIAL_BUILD_REQUEST,
    RESPONSE_MOVE_BANDIT_REQUEST,
    RESPONSE_OK,
    RESPONSE_TRADE_REQUEST,
    STRUCTURE_CITY,
    STRUCTURE_STREET,
    STRUCTURE_VILLAGE,
)
from settlebot.game_state import GameState

logger = logging.getLogger(__name__)


class ResponseCode(IntEnum):
    OK = RESPONSE_OK
    ID_ACKNOWLEDGMENT = RESPONSE_ID_ACKNOWLEDGMENT
    TRADE_REQUEST = RESPONSE_TRADE_REQUEST
    BUILD_REQUEST = RESPONSE_BUILD_REQUEST
    INITIAL_BUILD_REQUEST = RESPONSE_INITIAL_BUILD_REQUEST
    MOVE_BANDIT_REQUEST = RESPONSE_MOVE_BANDIT_REQUEST
    FORCE_DISCARD_REQUEST = RESPONSE_FORCE_DISCARD_REQUEST


# ---------------------------------------------------------------------------
# Typed message dataclasses
# ---------------------------------------------------------------------------

@dataclass
class GameMsg:
    """"game": a complete snapshot that supersedes the previous one."""
    game: GameState


@dataclass
class ResponseMsg:
    """"response": a status or a request for a move, selected by code."""
    code: int
    title: str = ""
    description: str = ""
    additional_info: str = ""
    is_error: bool = False

    def assigned_id(self) -> int:
        """The player id carried by an id acknowledgment.

        Raises:
            ValueError: if additional_info is not an integer.
        """
        return int(str(self.additional_info).strip())


@dataclass
class UnknownMsg:
    """Fallback for unparsable or unrecognized messages."""
    raw_data: Any = None


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def parse_message(raw: str) -> Any:
    """Parse one line received from the server into a typed message object.

    Args:
        raw: One JSON line, with or without its terminator.

    Returns:
        GameMsg, ResponseMsg, or UnknownMsg if the line is unusable.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError, RecursionError) as e:
        logger.warning(f"Malformed JSON received: {e}")
        return UnknownMsg(raw_data={"error": "malformed_json", "preview": str(raw)[:200]})

    if not isinstance(data, dict):
        logger.debug(f"Non-dict JSON: type={type(data).__name__}")
        return UnknownMsg(raw_data=data)

    model = data.get("model")
    if not isinstance(model, str):
        return UnknownMsg(raw_data=data)

    attributes = data.get("attributes")

    try:
        if model == MODEL_GAME:
            return _parse_game(attributes)
        if model == MODEL_RESPONSE:
            return _parse_response(attributes)
    except (KeyError, TypeError, ValueError, IndexError) as e:
        logger.warning(f"Error parsing {model!r} message: {e}")
        return UnknownMsg(raw_data=data)

    logger.debug(f"Unhandled model {model!r}")
    return UnknownMsg(raw_data=data)


def _parse_game(attributes: Any) -> GameMsg:
    return GameMsg(game=GameState.from_attributes(attributes))


def _parse_response(attributes: Any) -> Any:
    if not isinstance(attributes, dict):
        return UnknownMsg(raw_data=attributes)

    additional_info = attributes.get("additional_info")
    return ResponseMsg(
        code=int(attributes["code"]),
        title=str(attributes.get("title", "")),
        description=str(attributes.get("description", "")),
        additional_info="" if additional_info is None else str(additional_info),
        is_error=bool(attributes.get("is_error", False)),
    )


# ---------------------------------------------------------------------------
# Outbound commands
# ---------------------------------------------------------------------------

@dataclass
class Command:
    """One outbound payload, written to the socket as a single JSON line."""
    kind: str
    payload: Any

    def encode(self) -> bytes:
        return (json.dumps(self.payload) + LINE_TERMINATOR).encode("utf-8")


def join_command(name: str) -> Command:
    return Command("join", {"model": MODEL_JOIN, "attributes": {"id": -1, "name": name}})


def build_command(structure: str, location: str) -> Dict[str, str]:
    if structure not in (STRUCTURE_VILLAGE, STRUCTURE_STREET, STRUCTURE_CITY):
        raise ValueError(f"Unknown structure: {structure!r}")
    return {"structure": structure, "location": location}


def build_commands(builds: List[Dict[str, str]]) -> Command:
    """Builds are sent as one JSON array; an empty array means "nothing to build"."""
    return Command("build", list(builds))


def trade_command(give: str, receive: str) -> Command:
    return Command("trade", {"from": give, "to": receive})


def move_bandit_command(tile_key: str) -> Command:
    return Command("move_bandit", {"location": tile_key})


def discard_command(resources: Optional[Dict[str, int]]) -> Command:
    return Command("discard", dict(resources or {}))
