"""Game state snapshots and the connection-scoped session that owns them.

A GameState is built from one "game" message and replaced wholesale by the
next one; nothing in it is patched in place. The local player's id is not part
of the snapshot: the server sends it separately (response code 1), so the
Session tracks it as a second initialisation phase.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from settlebot.board import Board

logger = logging.getLogger(__name__)


class MissingPrecondition(RuntimeError):
    """A request arrived before the state needed to answer it."""


def _parse_resources(raw: Any) -> Dict[str, int]:
    """Resources arrive either as a list of names or as a name -> count mapping."""
    if raw is None:
        return {}
    if isinstance(raw, dict):
        merged: Counter = Counter()
        for name, count in raw.items():
            merged[str(name)] += int(count)
        return dict(merged)
    if isinstance(raw, list):
        return dict(Counter(str(name) for name in raw))
    raise TypeError(f"Unsupported resources payload: {type(raw).__name__}")


@dataclass
class Player:
    id: int
    color: str = ""
    name: str = ""
    resources: Dict[str, int] = field(default_factory=dict)

    @property
    def total_resources(self) -> int:
        return sum(self.resources.values())

    @classmethod
    def from_attributes(cls, attrs: Dict) -> "Player":
        return cls(
            id=int(attrs["id"]),
            color=str(attrs.get("color", "")),
            name=str(attrs.get("name", "")),
            resources=_parse_resources(attrs.get("resources")),
        )


@dataclass
class GameState:
    """One full snapshot pushed by the server."""
    board: Optional[Board] = None
    players: Tuple[Player, ...] = ()
    move_count: int = 0
    status: str = ""
    phase: str = ""
    current_player: Optional[int] = None
    last_dice_throw: Any = None
    events: List[Any] = field(default_factory=list)

    def player(self, player_id: int) -> Optional[Player]:
        for candidate in self.players:
            if candidate.id == player_id:
                return candidate
        return None

    def me(self, my_id: Optional[int]) -> Optional[Player]:
        """The local player, given the id the server acknowledged."""
        if my_id is None:
            return None
        return self.player(my_id)

    @classmethod
    def from_attributes(cls, attrs: Dict) -> "GameState":
        """Parse the attributes of a "game" envelope.

        Raises:
            KeyError / TypeError / ValueError on malformed content.
        """
        if not isinstance(attrs, dict):
            raise TypeError(f"Game attributes must be an object, got {type(attrs).__name__}")

        players = tuple(
            Player.from_attributes(item["attributes"])
            for item in attrs.get("players") or []
        )

        board = None
        board_envelope = attrs.get("board")
        if board_envelope is not None:
            board = Board.from_attributes(board_envelope["attributes"])

        current_player = attrs.get("current_player")
        return cls(
            board=board,
            players=players,
            move_count=int(attrs.get("move_count", 0)),
            status=str(attrs.get("status", "")),
            phase=str(attrs.get("phase", "")),
            current_player=int(current_player) if current_player is not None else None,
            last_dice_throw=attrs.get("last_dice_throw"),
            events=list(attrs.get("events") or []),
        )


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class SessionPhase(Enum):
    AWAITING_ID = 0   # connected and joined, id not yet acknowledged
    READY = 1         # id known


class Session:
    """Per-connection state: the current snapshot and our identity.

    A reconnect creates a new Session, so nothing survives a lost connection.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._game: Optional[GameState] = None
        self._my_id: Optional[int] = None
        self._phase = SessionPhase.AWAITING_ID
        self.messages_seen = 0

    @property
    def game(self) -> Optional[GameState]:
        return self._game

    @property
    def my_id(self) -> Optional[int]:
        return self._my_id

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    def replace_game(self, game: GameState) -> None:
        """Swap in a new snapshot; the previous one is discarded."""
        self._game = game
        logger.debug(
            f"Snapshot replaced: move_count={game.move_count}, "
            f"players={len(game.players)}, board={game.board!r}"
        )

    def acknowledge_id(self, player_id: int) -> None:
        if self._my_id is not None and self._my_id != player_id:
            logger.warning(f"Server re-assigned our id: {self._my_id} -> {player_id}")
        self._my_id = player_id
        self._phase = SessionPhase.READY
        logger.info(f"Identity acknowledged: id={player_id}")

    # -- preconditions for request handlers -------------------------------

    def require_game(self) -> GameState:
        if self._game is None:
            raise MissingPrecondition("no game snapshot received yet")
        return self._game

    def require_board(self) -> Board:
        board = self.require_game().board
        if board is None:
            raise MissingPrecondition("game snapshot has no board")
        return board

    def require_me(self) -> Player:
        if self._phase is not SessionPhase.READY:
            raise MissingPrecondition("player id not acknowledged yet")
        me = self.require_game().me(self._my_id)
        if me is None:
            raise MissingPrecondition(f"player id {self._my_id} not in snapshot")
        return me
