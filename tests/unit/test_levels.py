"""Level computation tests: tier boundaries must match the client table."""

import pytest

from ptracker.gamification.levels import LEVELS, compute_level, level_progress
from ptracker.gamification.schemas import Level


class TestComputeLevel:
    @pytest.mark.parametrize(
        ("points", "expected"),
        [
            (0, Level.NOVICE),
            (4, Level.NOVICE),
            (5, Level.FIGHTER),
            (9, Level.FIGHTER),
            (10, Level.MASTER),
            (250, Level.MASTER),
        ],
    )
    def test_tier_boundaries(self, points, expected):
        assert compute_level(points) == expected

    def test_negative_points_are_novice(self):
        assert compute_level(-3) == Level.NOVICE

    def test_table_matches_function(self):
        """Every tier's min_points maps to that tier."""
        for tier in LEVELS:
            assert compute_level(tier["min_points"]) == tier["level"]


class TestLevelProgress:
    def test_novice_progress(self):
        result = level_progress(3)
        assert result["level"] == Level.NOVICE
        assert result["title"] == "Новичок"
        assert result["next_level"] == Level.FIGHTER
        assert result["points_to_next"] == 2

    def test_fighter_progress(self):
        result = level_progress(5)
        assert result["level"] == Level.FIGHTER
        assert result["next_level"] == Level.MASTER
        assert result["points_to_next"] == 5

    def test_master_has_no_next(self):
        """At master, next_level is master and nothing is left to earn."""
        result = level_progress(42)
        assert result["level"] == Level.MASTER
        assert result["next_level"] == Level.MASTER
        assert result["points_to_next"] == 0
