"""Tests for settlebot/legal_moves.py - road and settlement placement rules."""
import pytest

from settlebot.legal_moves import (
    bandit_tiles,
    blocked_nodes,
    initial_road_edges,
    initial_settlement_nodes,
    occupied_nodes,
    player_roads,
    player_structures,
    potential_city_nodes,
    potential_road_edges,
    potential_settlement_nodes,
)
from settlebot.topology import nodes_adjacent_to

from tests.test_board import make_diamond_board, make_triangle_board

P, Q = 1, 2


def keys(entities):
    return {e.key for e in entities}


class TestPlayerHoldings:
    def test_player_structures(self):
        board = make_diamond_board(villages=[("A", P), ("D", Q)])
        assert keys(player_structures(board, P)) == {"A"}
        assert keys(player_structures(board, Q)) == {"D"}

    def test_player_roads_filters_by_owner(self):
        board = make_diamond_board(roads=[("T1", "T2", P), ("T3", "T4", Q)])
        assert keys(player_roads(board, P)) == {"(T1,T2)"}

    def test_unowned_road_counts_for_everyone(self):
        board = make_diamond_board(roads=[("T1", "T2", None)])
        assert keys(player_roads(board, P)) == {"(T1,T2)"}
        assert keys(player_roads(board, Q)) == {"(T1,T2)"}

    def test_city_upgrade_sites_are_own_villages(self):
        board = make_diamond_board(villages=[("A", P), ("D", Q)])
        assert keys(potential_city_nodes(board, P)) == {"A"}


class TestPotentialRoadEdges:
    def test_triangle_scenario(self):
        board = make_triangle_board(roads=[("T1", "T2", P)])
        roads = keys(potential_road_edges(board, P))
        assert roads == {"(T1,T3)", "(T2,T3)"}
        assert "(T1,T2)" not in roads

    def test_no_roads_no_candidates(self):
        board = make_diamond_board()
        assert potential_road_edges(board, P) == frozenset()

    def test_opponent_roads_excluded(self):
        board = make_diamond_board(roads=[("T1", "T2", P), ("T2", "T3", Q)])
        assert keys(potential_road_edges(board, P)) == {"(T1,T3)"}

    def test_opponent_road_network_not_used_as_frontier(self):
        board = make_diamond_board(roads=[("T3", "T4", Q)])
        assert potential_road_edges(board, P) == frozenset()


class TestPotentialSettlementNodes:
    def test_settlement_at_end_of_road(self):
        board = make_diamond_board(
            villages=[("A", P)],
            roads=[("T1", "T2", P), ("T2", "T3", P)],
        )
        assert keys(potential_settlement_nodes(board, P)) == {"N5"}

    def test_opponent_village_blocks_neighbour(self):
        board = make_diamond_board(
            villages=[("A", P), ("D", Q)],
            roads=[("T1", "T2", P), ("T2", "T3", P)],
        )
        assert potential_settlement_nodes(board, P) == frozenset()

    def test_own_village_blocks_neighbour(self):
        board = make_triangle_board(villages=[("N2", P)], roads=[("T1", "T2", P)])
        assert potential_settlement_nodes(board, P) == frozenset()

    def test_distance_rule_holds_for_every_player(self):
        board = make_diamond_board(
            villages=[("N1", P)],
            roads=[("T1", "T2", P), ("T2", "T3", Q), ("T2", "T4", Q)],
        )
        forbidden = {"N1"} | keys(nodes_adjacent_to(board, board.node("N1")))
        for player_id in (P, Q):
            assert not keys(potential_settlement_nodes(board, player_id)) & forbidden
        assert keys(potential_settlement_nodes(board, Q)) == {"C"}

    def test_blocked_nodes(self):
        board = make_diamond_board(villages=[("C", Q)])
        assert keys(occupied_nodes(board)) == {"C"}
        assert keys(blocked_nodes(board)) == {"C", "N5"}

    def test_idempotent(self):
        board = make_diamond_board(villages=[("A", P)], roads=[("T2", "T3", P)])
        assert potential_settlement_nodes(board, P) == potential_settlement_nodes(board, P)
        assert potential_road_edges(board, P) == potential_road_edges(board, P)


class TestInitialPlacement:
    def test_empty_board_every_node_open(self):
        board = make_diamond_board()
        assert keys(initial_settlement_nodes(board)) == {"N1", "N5", "A", "B", "C", "D"}

    def test_second_round_respects_distance_rule(self):
        board = make_diamond_board(villages=[("N1", Q)])
        assert keys(initial_settlement_nodes(board)) == {"C", "D"}

    def test_initial_road_edges(self):
        board = make_diamond_board(roads=[("T1", "T2", Q)])
        edges = initial_road_edges(board, board.node("N1"))
        assert keys(edges) == {"(T1,T3)", "(T2,T3)"}


class TestBanditTiles:
    def test_excludes_current_bandit_tile(self):
        board = make_diamond_board(bandit="T4")
        assert keys(bandit_tiles(board)) == {"T1", "T2", "T3"}

    @pytest.mark.parametrize("bandit", [None, "T9"])
    def test_all_tiles_when_bandit_unplaced(self, bandit):
        board = make_triangle_board(bandit=bandit)
        assert keys(bandit_tiles(board)) == {"T1", "T2", "T3"}
