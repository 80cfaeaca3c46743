"""Immutable board snapshot: tiles, nodes, edges and the bandit.

Entities are keyed by the string identifiers the server sends. Nodes carry
the keys of the (up to three) tiles meeting at that corner; edges are keyed
by the pair of tiles they separate, e.g. "([1,2],[2,1])". No adjacency graph
is stored here, see settlebot/topology.py for how neighbours are derived.

Wire shape of the board attributes:
  {"tiles":   [{"model": "tile",   "attributes": {key, resource_type, number, orientation, x, y}}],
   "nodes":   [{"model": "node",   "attributes": {key, structure, player, t_key, r_key, l_key}}],
   "edges":   [{"model": "edge",   "attributes": {key, player, road}}],
   "bandits": [{"model": "bandit", "attributes": {tile_key}}]}
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from settlebot.config import STRUCTURE_NONE

logger = logging.getLogger(__name__)


class BoardError(ValueError):
    """Raised when a snapshot violates the board's key invariants."""


class EntityKind(Enum):
    TILE = "tile"
    NODE = "node"
    EDGE = "edge"


def edge_key(tile_a: str, tile_b: str) -> str:
    """Canonical key of the edge between two tiles.

    The pair is ordered lexicographically, so edge_key(a, b) == edge_key(b, a).
    """
    first, second = sorted((tile_a, tile_b))
    return f"({first},{second})"


def _normalise_structure(value: Optional[str]) -> str:
    if value is None:
        return STRUCTURE_NONE
    value = str(value).strip()
    if value.lower() == "none":
        return STRUCTURE_NONE
    return value


def _optional_int(value) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Tile:
    key: str
    resource_type: str
    number: int
    x: int
    y: int
    orientation: str = ""

    @classmethod
    def from_attributes(cls, attrs: Dict) -> "Tile":
        return cls(
            key=str(attrs["key"]),
            resource_type=str(attrs.get("resource_type", "")),
            number=int(attrs.get("number", 0)),
            x=int(attrs.get("x", 0)),
            y=int(attrs.get("y", 0)),
            orientation=str(attrs.get("orientation", "")),
        )


@dataclass(frozen=True)
class Node:
    """A corner where up to three tiles meet; the site of a village or city."""
    key: str
    structure: str = STRUCTURE_NONE
    player: Optional[int] = None
    t_key: str = ""
    r_key: str = ""
    l_key: str = ""

    @property
    def is_occupied(self) -> bool:
        return self.structure != STRUCTURE_NONE

    @property
    def tile_keys(self) -> Tuple[str, ...]:
        """Non-empty tile references in t, r, l order."""
        return tuple(k for k in (self.t_key, self.r_key, self.l_key) if k)

    @classmethod
    def from_attributes(cls, attrs: Dict) -> "Node":
        return cls(
            key=str(attrs["key"]),
            structure=_normalise_structure(attrs.get("structure")),
            player=_optional_int(attrs.get("player")),
            t_key=str(attrs.get("t_key") or ""),
            r_key=str(attrs.get("r_key") or ""),
            l_key=str(attrs.get("l_key") or ""),
        )


@dataclass(frozen=True)
class Edge:
    """The boundary between two tiles; the site of a road."""
    key: str
    player: Optional[int] = None
    road: bool = False

    @property
    def is_taken(self) -> bool:
        return self.road or self.player is not None

    @classmethod
    def from_attributes(cls, attrs: Dict) -> "Edge":
        return cls(
            key=str(attrs["key"]),
            player=_optional_int(attrs.get("player")),
            road=bool(attrs.get("road", False)),
        )


Entity = Union[Tile, Node, Edge]


# ---------------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------------

def _index_by_key(kind: EntityKind, entities: Iterable) -> Dict[str, Entity]:
    index = {}
    for entity in entities:
        if entity.key in index:
            raise BoardError(f"Duplicate {kind.value} key {entity.key!r}")
        index[entity.key] = entity
    return index


def _split_edge_key(key: str, tile_keys) -> Optional[Tuple[str, str]]:
    """Recover the two tile keys from a server edge key "(A,B)".

    Tile keys may contain commas themselves ("[1,2]"), so the split point is
    found by trying every comma against the known tile keys.
    """
    if not (key.startswith("(") and key.endswith(")")):
        return None
    inner = key[1:-1]
    pos = inner.find(",")
    while pos != -1:
        left, right = inner[:pos], inner[pos + 1:]
        if left in tile_keys and right in tile_keys:
            return left, right
        pos = inner.find(",", pos + 1)
    return None


class Board:
    """Read-only snapshot of one board as pushed by the server."""

    def __init__(self, tiles: Iterable[Tile] = (), nodes: Iterable[Node] = (),
                 edges: Iterable[Edge] = (), bandit: Optional[str] = None):
        self._tiles: Tuple[Tile, ...] = tuple(tiles)
        self._nodes: Tuple[Node, ...] = tuple(nodes)
        self._edges: Tuple[Edge, ...] = tuple(edges)
        self.bandit = bandit

        self._tile_index = _index_by_key(EntityKind.TILE, self._tiles)
        self._node_index = _index_by_key(EntityKind.NODE, self._nodes)
        self._edge_index = self._index_edges()

        for node in self._nodes:
            for ref in node.tile_keys:
                if ref not in self._tile_index:
                    logger.warning(f"Node {node.key} references unknown tile {ref!r}")
        if bandit is not None and bandit not in self._tile_index:
            logger.warning(f"Bandit placed on unknown tile {bandit!r}")

    def _index_edges(self) -> Dict[str, Edge]:
        index: Dict[str, Edge] = {}
        for edge in self._edges:
            pair = _split_edge_key(edge.key, self._tile_index)
            canonical = edge_key(*pair) if pair else edge.key
            if canonical in index:
                raise BoardError(f"Duplicate edge key {edge.key!r}")
            index[canonical] = edge
        return index

    # -- collections -------------------------------------------------------

    @property
    def tiles(self) -> Tuple[Tile, ...]:
        return self._tiles

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return self._nodes

    @property
    def edges(self) -> Tuple[Edge, ...]:
        return self._edges

    def __iter__(self) -> Iterator[Entity]:
        yield from self._tiles
        yield from self._nodes
        yield from self._edges

    # -- lookups -----------------------------------------------------------

    def tile(self, key: str) -> Optional[Tile]:
        return self._tile_index.get(key)

    def node(self, key: str) -> Optional[Node]:
        return self._node_index.get(key)

    def edge(self, key: str) -> Optional[Edge]:
        """Look up an edge by key; "(A,B)" and "(B,A)" find the same edge."""
        found = self._edge_index.get(key)
        if found is not None:
            return found
        pair = _split_edge_key(key, self._tile_index)
        if pair is None:
            return None
        return self._edge_index.get(edge_key(*pair))

    def edge_between(self, tile_a: str, tile_b: str) -> Optional[Edge]:
        return self._edge_index.get(edge_key(tile_a, tile_b))

    def lookup(self, kind: EntityKind, key: str) -> Optional[Entity]:
        if kind is EntityKind.TILE:
            return self.tile(key)
        if kind is EntityKind.NODE:
            return self.node(key)
        if kind is EntityKind.EDGE:
            return self.edge(key)
        raise ValueError(f"Unknown entity kind: {kind!r}")

    def resource_types(self) -> List[str]:
        """Distinct tile resource types in first-seen order."""
        seen: Dict[str, None] = {}
        for tile in self._tiles:
            if tile.resource_type:
                seen.setdefault(tile.resource_type, None)
        return list(seen)

    def __repr__(self) -> str:
        return (
            f"Board(tiles={len(self._tiles)}, nodes={len(self._nodes)}, "
            f"edges={len(self._edges)}, bandit={self.bandit!r})"
        )

    # -- parsing -----------------------------------------------------------

    @classmethod
    def from_attributes(cls, attrs: Dict) -> "Board":
        """Build a Board from the server's board attributes.

        Raises:
            KeyError / TypeError / ValueError on malformed entities,
            BoardError on duplicate keys.
        """
        if not isinstance(attrs, dict):
            raise TypeError(f"Board attributes must be an object, got {type(attrs).__name__}")

        tiles = [Tile.from_attributes(item["attributes"]) for item in attrs.get("tiles") or []]
        nodes = [Node.from_attributes(item["attributes"]) for item in attrs.get("nodes") or []]
        edges = [Edge.from_attributes(item["attributes"]) for item in attrs.get("edges") or []]

        bandit = None
        bandits = attrs.get("bandits") or []
        if bandits:
            bandit = str(bandits[0]["attributes"]["tile_key"])
            if len(bandits) > 1:
                logger.debug(f"{len(bandits)} bandits in snapshot, using the first")

        return cls(tiles=tiles, nodes=nodes, edges=edges, bandit=bandit)
