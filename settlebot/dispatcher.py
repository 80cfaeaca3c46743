"""Response-code dispatcher.

Routes each server "response" to the handler for its code. Handlers read the
session's current snapshot, ask settlebot/legal_moves.py what is legal, let
the strategy pick, and return at most one Command:

  0   Ok                   -> nothing
  1   IdAcknowledgment     -> record our id
  100 TradeRequest         -> trade {from, to}
  101 BuildRequest         -> [village] or [street] or []
  102 InitialBuildRequest  -> [village, street]
  103 MoveBanditRequest    -> {location: tile}
  104 ForceDiscardRequest  -> our resource holdings
  *   anything else        -> logged, nothing

A handler that cannot run (no snapshot yet, id unknown, nowhere to build)
skips this request only; dispatch() never raises.
"""
import logging
from typing import Callable, Dict, List, Optional, Set, Tuple

from settlebot.config import DESERT_RESOURCE, STRUCTURE_STREET, STRUCTURE_VILLAGE
from settlebot.board import Board
from settlebot.game_logger import GameLogger
from settlebot.game_state import MissingPrecondition, Player, Session
from settlebot.legal_moves import (
    bandit_tiles,
    initial_road_edges,
    initial_settlement_nodes,
    potential_road_edges,
    potential_settlement_nodes,
)
from settlebot.protocol import (
    Command,
    ResponseCode,
    ResponseMsg,
    build_command,
    build_commands,
    discard_command,
    move_bandit_command,
    trade_command,
)
from settlebot.strategy import SelectionStrategy

logger = logging.getLogger(__name__)


class NoLegalMove(RuntimeError):
    """The request has no legal answer on the current board."""


def trade_candidates(me: Player, board: Optional[Board]) -> Set[Tuple[str, str]]:
    """(give, receive) pairs: something we hold for any other known resource."""
    known: List[str] = []
    if board is not None:
        known.extend(r for r in board.resource_types() if r != DESERT_RESOURCE)
    known.extend(r for r in me.resources if r not in known)

    return {
        (give, receive)
        for give, count in me.resources.items() if count > 0
        for receive in known if receive != give
    }


class Dispatcher:
    """Maps response codes to move handlers."""

    def __init__(self, strategy: SelectionStrategy, game_logger: Optional[GameLogger] = None):
        self.strategy = strategy
        self.game_logger = game_logger
        self._handlers: Dict[int, Callable[[ResponseMsg, Session], Optional[Command]]] = {
            ResponseCode.OK: self._handle_ok,
            ResponseCode.ID_ACKNOWLEDGMENT: self._handle_id_acknowledgment,
            ResponseCode.TRADE_REQUEST: self._handle_trade_request,
            ResponseCode.BUILD_REQUEST: self._handle_build_request,
            ResponseCode.INITIAL_BUILD_REQUEST: self._handle_initial_build_request,
            ResponseCode.MOVE_BANDIT_REQUEST: self._handle_move_bandit_request,
            ResponseCode.FORCE_DISCARD_REQUEST: self._handle_force_discard_request,
        }

    def dispatch(self, response: ResponseMsg, session: Session) -> Optional[Command]:
        """Handle one response; return the command to send, if any."""
        handler = self._handlers.get(response.code)
        if handler is None:
            logger.warning(
                f"Ignoring unrecognized response code {response.code} "
                f"({response.title!r}: {response.description!r})"
            )
            return None

        if response.is_error:
            logger.warning(f"Server reported error {response.code}: {response.description!r}")

        try:
            return handler(response, session)
        except (MissingPrecondition, NoLegalMove) as e:
            logger.warning(f"Skipping {ResponseCode(response.code).name}: {e}")
        except Exception as e:
            logger.error(f"Handler for code {response.code} failed: {e}", exc_info=True)
            if self.game_logger is not None:
                self.game_logger.log_protocol_event(
                    "handler_failure", f"code {response.code}: {type(e).__name__}: {e}",
                )
        return None

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _handle_ok(self, response: ResponseMsg, session: Session) -> None:
        logger.debug(f"Ok: {response.description!r}")

    def _handle_id_acknowledgment(self, response: ResponseMsg, session: Session) -> None:
        try:
            player_id = response.assigned_id()
        except ValueError:
            logger.warning(f"Id acknowledgment without a numeric id: {response.additional_info!r}")
            return
        session.acknowledge_id(player_id)

    def _handle_trade_request(self, response: ResponseMsg, session: Session) -> Optional[Command]:
        me = session.require_me()
        candidates = trade_candidates(me, session.require_game().board)
        if not candidates:
            logger.info("Trade request: nothing to offer")
            return None
        give, receive = self.strategy.choose_trade(candidates)
        return trade_command(give, receive)

    def _handle_build_request(self, response: ResponseMsg, session: Session) -> Command:
        me = session.require_me()
        board = session.require_board()

        settlements = potential_settlement_nodes(board, me.id)
        if settlements:
            node = self.strategy.choose_node(settlements)
            return build_commands([build_command(STRUCTURE_VILLAGE, node.key)])

        roads = potential_road_edges(board, me.id)
        if roads:
            edge = self.strategy.choose_edge(roads)
            return build_commands([build_command(STRUCTURE_STREET, edge.key)])

        logger.info("Build request: no legal settlement or road, sending empty build")
        return build_commands([])

    def _handle_initial_build_request(self, response: ResponseMsg, session: Session) -> Command:
        board = session.require_board()

        nodes = initial_settlement_nodes(board)
        if not nodes:
            raise NoLegalMove("no open node for the initial settlement")
        node = self.strategy.choose_node(nodes)
        builds = [build_command(STRUCTURE_VILLAGE, node.key)]

        edges = initial_road_edges(board, node)
        if edges:
            edge = self.strategy.choose_edge(edges)
            builds.append(build_command(STRUCTURE_STREET, edge.key))
        else:
            logger.warning(f"Initial build: node {node.key} has no free edge, settlement only")
        return build_commands(builds)

    def _handle_move_bandit_request(self, response: ResponseMsg, session: Session) -> Command:
        board = session.require_board()
        tiles = bandit_tiles(board)
        if not tiles:
            raise NoLegalMove("no tile to move the bandit to")
        return move_bandit_command(self.strategy.choose_tile(tiles).key)

    def _handle_force_discard_request(self, response: ResponseMsg, session: Session) -> Command:
        me = session.require_me()
        return discard_command(me.resources)
