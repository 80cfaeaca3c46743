"""Move selection among legal candidates.

The dispatcher computes what is legal; a SelectionStrategy only picks one
element from a non-empty candidate collection. Strategies never see the
board, so they can be swapped (random, scripted, heuristic) without touching
legality.

Candidates are ordered by key before choosing so that a seeded RandomStrategy
replays the same game identically.
"""
import logging
import random
from typing import Collection, Optional, Sequence, Tuple

from settlebot.board import Edge, Node, Tile

logger = logging.getLogger(__name__)

TradePair = Tuple[str, str]


def _ordered(candidates: Collection, key=None) -> list:
    if not candidates:
        raise ValueError("Cannot choose from an empty candidate set")
    return sorted(candidates, key=key or (lambda entity: entity.key))


class SelectionStrategy:
    """Base strategy: choose via _pick() over key-ordered candidates."""

    name = "base"

    def _pick(self, ordered: Sequence):
        raise NotImplementedError

    def choose_node(self, candidates: Collection[Node]) -> Node:
        return self._pick(_ordered(candidates))

    def choose_edge(self, candidates: Collection[Edge]) -> Edge:
        return self._pick(_ordered(candidates))

    def choose_tile(self, candidates: Collection[Tile]) -> Tile:
        return self._pick(_ordered(candidates))

    def choose_trade(self, candidates: Collection[TradePair]) -> TradePair:
        return self._pick(_ordered(candidates, key=lambda pair: pair))


class RandomStrategy(SelectionStrategy):
    name = "random"

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def _pick(self, ordered: Sequence):
        return self.rng.choice(ordered)


class FirstStrategy(SelectionStrategy):
    """Always the first candidate in key order. Deterministic."""

    name = "first"

    def _pick(self, ordered: Sequence):
        return ordered[0]


STRATEGIES = {
    RandomStrategy.name: RandomStrategy,
    FirstStrategy.name: FirstStrategy,
}


def make_strategy(name: str, seed: Optional[int] = None) -> SelectionStrategy:
    """Build a strategy by CLI name.

    Raises:
        ValueError: for an unknown name.
    """
    if name not in STRATEGIES:
        raise ValueError(f"Unknown strategy {name!r}, expected one of {sorted(STRATEGIES)}")
    if name == RandomStrategy.name:
        return RandomStrategy(random.Random(seed))
    if seed is not None:
        logger.debug(f"Seed {seed} ignored by strategy {name!r}")
    return STRATEGIES[name]()
