"""Legal build locations for a player on a board snapshot.

Every function is pure over (board, player_id) and returns a frozenset.
Picking one element out of these sets is left to settlebot/strategy.py.

Placement rules applied:
  - roads extend from the player's road network onto untaken edges;
  - the distance rule: no settlement on an occupied node or on a node one
    edge away from an occupied node (for any owner, the player included);
  - outside the setup rounds, settlements must touch one of the player's roads.
"""
from typing import FrozenSet, Set

from settlebot.board import Board, Edge, Node, Tile
from settlebot.config import STRUCTURE_VILLAGE
from settlebot.topology import edges_around, nodes_adjacent_to, nodes_around


def player_structures(board: Board, player_id: int) -> FrozenSet[Node]:
    """Nodes carrying a village or city owned by the player."""
    return frozenset(
        node for node in board.nodes
        if node.is_occupied and node.player == player_id
    )


def player_roads(board: Board, player_id: int) -> FrozenSet[Edge]:
    """Road edges belonging to the player.

    A road with no recorded owner is counted as the player's: the server does
    not always populate edge ownership. Roads owned by anyone else are not.
    """
    return frozenset(
        edge for edge in board.edges
        if edge.road and (edge.player is None or edge.player == player_id)
    )


def _road_endpoints(board: Board, player_id: int) -> Set[Node]:
    endpoints: Set[Node] = set()
    for road in player_roads(board, player_id):
        endpoints.update(nodes_around(board, road))
    return endpoints


def potential_road_edges(board: Board, player_id: int) -> FrozenSet[Edge]:
    """Untaken edges touching a node at either end of one of the player's roads."""
    candidates: Set[Edge] = set()
    for node in _road_endpoints(board, player_id):
        candidates.update(edges_around(board, node))
    return frozenset(edge for edge in candidates if not edge.is_taken)


def occupied_nodes(board: Board) -> FrozenSet[Node]:
    return frozenset(node for node in board.nodes if node.is_occupied)


def blocked_nodes(board: Board) -> FrozenSet[Node]:
    """Nodes where the distance rule forbids a new settlement."""
    occupied = occupied_nodes(board)
    blocked: Set[Node] = set(occupied)
    for node in occupied:
        blocked.update(nodes_adjacent_to(board, node))
    return frozenset(blocked)


def potential_settlement_nodes(board: Board, player_id: int) -> FrozenSet[Node]:
    """Nodes at the end of the player's roads that satisfy the distance rule."""
    candidates = _road_endpoints(board, player_id)
    if not candidates:
        return frozenset()
    return frozenset(candidates) - blocked_nodes(board)


def potential_city_nodes(board: Board, player_id: int) -> FrozenSet[Node]:
    """The player's villages, each of which may be upgraded to a city."""
    return frozenset(
        node for node in player_structures(board, player_id)
        if node.structure == STRUCTURE_VILLAGE
    )


# ---------------------------------------------------------------------------
# Setup rounds and bandit
# ---------------------------------------------------------------------------

def initial_settlement_nodes(board: Board) -> FrozenSet[Node]:
    """Setup-round settlement sites: any node the distance rule leaves open.

    No road connection is needed. On an empty board this is every node.
    """
    return frozenset(board.nodes) - blocked_nodes(board)


def initial_road_edges(board: Board, node: Node) -> FrozenSet[Edge]:
    """Untaken edges leaving a freshly placed setup settlement."""
    return frozenset(edge for edge in edges_around(board, node) if not edge.is_taken)


def bandit_tiles(board: Board) -> FrozenSet[Tile]:
    """Tiles the bandit may move to (anywhere but where it stands)."""
    return frozenset(tile for tile in board.tiles if tile.key != board.bandit)
