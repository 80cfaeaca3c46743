"""Neighbour relations derived from board keys.

Nothing here is cached: every call recomputes from the snapshot's key
references. Boards are small and replaced wholesale on every server push.

    node --t_key/r_key/l_key--> tiles
    node --pairs of its tiles--> edges   (edge_key(a, b) for each combination)
    edge --nodes sharing it----> nodes
    node --edge--> node                  (one road-hop)
"""
from itertools import combinations
from typing import Dict, List

from settlebot.board import Board, Edge, Node, Tile


def tiles_around(board: Board, node: Node) -> List[Tile]:
    """Tiles touching the node, in t, r, l order, skipping unresolved refs."""
    tiles = []
    for key in node.tile_keys:
        tile = board.tile(key)
        if tile is not None:
            tiles.append(tile)
    return tiles


def edges_around(board: Board, node: Node) -> List[Edge]:
    """Edges ending at the node.

    One candidate per unordered pair of surrounding tiles: 3 tiles give 3
    candidates, 2 tiles give 1. Candidates missing from the board are skipped.
    """
    edges = []
    for first, second in combinations(tiles_around(board, node), 2):
        edge = board.edge_between(first.key, second.key)
        if edge is not None:
            edges.append(edge)
    return edges


def nodes_around(board: Board, edge: Edge) -> List[Node]:
    """Nodes terminating the edge (two on a complete board, fewer at its rim)."""
    return [
        node for node in board.nodes
        if any(candidate.key == edge.key for candidate in edges_around(board, node))
    ]


def nodes_adjacent_to(board: Board, node: Node) -> List[Node]:
    """Nodes one road-hop away from the node, excluding the node itself."""
    neighbours: Dict[str, Node] = {}
    for edge in edges_around(board, node):
        for other in nodes_around(board, edge):
            if other.key != node.key:
                neighbours.setdefault(other.key, other)
    return list(neighbours.values())
