"""
Unit tests for the level curve and badge rules.

Test Coverage
-------------
- Level boundaries and progress-bar helpers
- Each badge rule, including empty-category and empty-catalog edges
- Badge merging never revokes and keeps earn order
- Badge display metadata from YAML
"""

import pytest

from src.core.config.manager import ConfigManager
from src.database.models.enums import TreasureCategory
from src.modules.progress.badges import (
    ALL_BADGE_IDS,
    describe_badge,
    evaluate_badges,
    merge_badges,
    order_badges,
)
from src.modules.progress.level import (
    calculate_level,
    level_progress_percent,
    points_into_level,
    points_to_next_level,
)
from src.modules.shared.constants import (
    BADGE_ACADEMIC_SWEEP,
    BADGE_COMPLETIONIST,
    BADGE_FIRST_FIND,
    BADGE_SOCIAL_TASTE,
)
from tests.conftest import make_treasure


# ============================================================================
# LEVEL CURVE
# ============================================================================


@pytest.mark.unit
class TestLevelCurve:
    @pytest.mark.parametrize(
        "points, level",
        [(0, 1), (199, 1), (200, 2), (399, 2), (400, 3), (650, 4)],
    )
    def test_level_boundaries(self, points, level):
        assert calculate_level(points) == level

    def test_negative_points_rejected(self):
        with pytest.raises(ValueError):
            calculate_level(-1)

    def test_points_into_and_to_next_level(self):
        assert points_into_level(650) == 50
        assert points_to_next_level(650) == 150
        assert points_to_next_level(0) == 200
        assert points_to_next_level(200) == 200

    def test_progress_percent(self):
        assert level_progress_percent(100) == pytest.approx(50.0)
        assert level_progress_percent(400) == pytest.approx(0.0)


# ============================================================================
# BADGE RULES
# ============================================================================


@pytest.mark.unit
class TestEvaluateBadges:
    def test_nothing_unlocked_earns_nothing(self, campus_catalog):
        assert evaluate_badges([], campus_catalog) == frozenset()

    def test_first_find(self, campus_catalog):
        assert evaluate_badges(["heritage-arch"], campus_catalog) == {BADGE_FIRST_FIND}

    def test_social_taste_needs_one_social(self, campus_catalog):
        assert evaluate_badges(["student-union-plaza"], campus_catalog) == {
            BADGE_FIRST_FIND,
            BADGE_SOCIAL_TASTE,
        }

    def test_academic_sweep_needs_every_academic(self, campus_catalog):
        assert BADGE_ACADEMIC_SWEEP not in evaluate_badges(["grand-library"], campus_catalog)
        assert BADGE_ACADEMIC_SWEEP in evaluate_badges(
            ["grand-library", "innovation-hub"], campus_catalog
        )

    def test_academic_sweep_not_awarded_without_academic_treasures(self):
        catalog = [make_treasure("arch", category=TreasureCategory.HISTORY)]
        assert BADGE_ACADEMIC_SWEEP not in evaluate_badges(["arch"], catalog)

    def test_completionist_needs_full_catalog(self, campus_catalog):
        all_ids = [t.id for t in campus_catalog]
        assert BADGE_COMPLETIONIST not in evaluate_badges(all_ids[:-1], campus_catalog)
        assert evaluate_badges(all_ids, campus_catalog) == frozenset(ALL_BADGE_IDS)

    def test_empty_catalog_only_first_find(self):
        assert evaluate_badges(["ghost"], []) == {BADGE_FIRST_FIND}

    def test_unlock_order_does_not_matter(self, campus_catalog):
        ids = [t.id for t in campus_catalog]
        assert evaluate_badges(ids, campus_catalog) == evaluate_badges(reversed(ids), campus_catalog)

    def test_repeated_evaluation_is_stable(self, campus_catalog):
        ids = ["grand-library", "innovation-hub", "student-union-plaza"]

        first = evaluate_badges(ids, campus_catalog)
        second = evaluate_badges(ids, campus_catalog)

        assert first == second
        assert order_badges(first) == order_badges(second)


@pytest.mark.unit
class TestMergeBadges:
    def test_held_badges_are_never_dropped(self):
        merged = merge_badges([BADGE_COMPLETIONIST], {BADGE_FIRST_FIND})
        assert merged == (BADGE_COMPLETIONIST, BADGE_FIRST_FIND)

    def test_new_badges_follow_rule_order(self):
        merged = merge_badges([], {BADGE_COMPLETIONIST, BADGE_SOCIAL_TASTE, BADGE_FIRST_FIND})
        assert merged == (BADGE_FIRST_FIND, BADGE_SOCIAL_TASTE, BADGE_COMPLETIONIST)

    def test_no_duplicates(self):
        merged = merge_badges([BADGE_FIRST_FIND], {BADGE_FIRST_FIND})
        assert merged == (BADGE_FIRST_FIND,)

    def test_unknown_ids_sorted_after_known(self):
        assert order_badges({"zeta", BADGE_FIRST_FIND, "alpha"}) == (
            BADGE_FIRST_FIND,
            "alpha",
            "zeta",
        )


@pytest.mark.unit
class TestBadgeMetadata:
    def test_display_names_from_yaml(self):
        assert describe_badge(BADGE_FIRST_FIND).name == "Rookie Scout"
        assert describe_badge(BADGE_ACADEMIC_SWEEP).name == "High IQ"
        assert describe_badge(BADGE_SOCIAL_TASTE).name == "Social Star"
        assert describe_badge(BADGE_COMPLETIONIST).name == "Elite Hunter"

    def test_override_wins(self):
        ConfigManager.set_override(f"badges.{BADGE_FIRST_FIND}", {"name": "Trailblazer"})
        info = describe_badge(BADGE_FIRST_FIND)
        assert info.name == "Trailblazer"
        assert info.description == ""

    def test_unknown_badge_falls_back_to_id(self):
        info = describe_badge("mystery")
        assert info.name == "mystery"
