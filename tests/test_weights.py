# tests/test_weights.py
import sqlite3

import pytest

from math_drill.db import get_connection
from math_drill.models import DrillSettings, Family, Question
from math_drill.weights import (
    MAX_WEIGHT, MIN_WEIGHT, SqliteWeightStore, apply_answer, build_weight_snapshot,
    clamp_weights, clear_weights, implicated_operands, initial_weight, load_weights, save_weights,
    update_weight,
)


def test_initial_weight_easy_number():
    assert initial_weight(5) == 0.8
    assert initial_weight(0) == 0.8


def test_initial_weight_hard_number():
    assert initial_weight(9) == 1.5
    assert initial_weight(17) == 1.5


def test_initial_weight_neutral_number():
    assert initial_weight(4) == 1.0


def test_initial_weight_stored_wins():
    assert initial_weight(9, 0.6) == 0.6
    assert initial_weight(3, 4.0) == 4.0


def test_update_weight_miss_adds_two():
    assert update_weight(1.0, correct=False, elapsed_ms=500) == 3.0


def test_update_weight_slow_correct():
    assert update_weight(1.0, correct=True, elapsed_ms=6000) == 2.0


def test_update_weight_hesitant_correct():
    assert update_weight(1.0, correct=True, elapsed_ms=4000) == pytest.approx(1.2)


def test_update_weight_fast_correct():
    """Fast correct answer lowers the weight."""
    assert update_weight(1.0, correct=True, elapsed_ms=1000) == pytest.approx(0.8)


def test_update_weight_fast_correct_floor():
    assert update_weight(0.6, correct=True, elapsed_ms=100) == MIN_WEIGHT
    assert update_weight(0.5, correct=True, elapsed_ms=100) == MIN_WEIGHT


def test_update_weight_normal_pace_unchanged():
    assert update_weight(1.3, correct=True, elapsed_ms=2000) == 1.3


def test_update_weight_boundaries():
    """Exactly 5000ms counts as hesitant, exactly 3000ms and 1500ms as normal."""
    assert update_weight(1.0, True, 5000) == pytest.approx(1.2)
    assert update_weight(1.0, True, 3000) == 1.0
    assert update_weight(1.0, True, 1500) == 1.0


def test_update_weight_clamped_at_max():
    assert update_weight(9.0, correct=False, elapsed_ms=0) == MAX_WEIGHT


def test_repeated_misses_on_hard_number():
    """Squares of 9 missed three times climb 1.5 -> 3.5 -> 5.5 -> 7.5, then cap."""
    weight = initial_weight(9)
    seen = []
    for _ in range(5):
        weight = update_weight(weight, correct=False, elapsed_ms=2000)
        seen.append(weight)
    assert seen == [3.5, 5.5, 7.5, 9.5, 10.0]


def test_weight_stays_in_bounds_for_any_sequence(rng):
    weight = 1.0
    for _ in range(2000):
        weight = update_weight(weight, rng.random() < 0.5, rng.randint(0, 8000))
        assert MIN_WEIGHT <= weight <= MAX_WEIGHT


def test_implicated_operands_per_family():
    assert implicated_operands(Question(Family.SQUARES, 9, 81)) == [9]
    assert implicated_operands(Question(Family.ADDITION, 3, 7, operand2=4)) == [3, 4]
    assert implicated_operands(Question(Family.DIVISION, 12, 4, operand2=3)) == [3, 4]


def test_apply_answer_updates_both_operands():
    weights = {3: 1.0, 4: 1.0}
    apply_answer(weights, Question(Family.MULTIPLICATION, 3, 12, operand2=4), True, 1000)
    assert weights[3] == pytest.approx(0.8)
    assert weights[4] == pytest.approx(0.8)


def test_apply_answer_same_value_twice():
    """3 x 3 moves the weight for 3 twice."""
    weights = {3: 1.0}
    apply_answer(weights, Question(Family.MULTIPLICATION, 3, 9, operand2=3), False, 1000)
    assert weights[3] == 5.0


def test_apply_answer_missing_operand_uses_default():
    weights = {}
    apply_answer(weights, Question(Family.SQUARES, 9, 81), False, 1000)
    assert weights[9] == 3.5


def test_build_weight_snapshot_covers_both_ranges():
    settings = DrillSettings(family=Family.ADDITION, min=1, max=3, min2=8, max2=9)
    snapshot = build_weight_snapshot(settings, {2: 4.0})
    assert snapshot == {1: 0.8, 2: 4.0, 3: 1.0, 8: 1.5, 9: 1.5}


def test_build_weight_snapshot_squares_ignores_second_range():
    settings = DrillSettings(family=Family.SQUARES, min=3, max=4, min2=50, max2=60)
    assert sorted(build_weight_snapshot(settings, {})) == [3, 4]


def test_save_and_load_weights(ready_db):
    save_weights(ready_db, Family.SQUARES, "standard", {9: 3.5, 4: 0.8})
    assert load_weights(ready_db, Family.SQUARES, "standard") == {9: 3.5, 4: 0.8}


def test_save_weights_overwrites(ready_db):
    save_weights(ready_db, Family.SQUARES, "standard", {9: 3.5})
    save_weights(ready_db, Family.SQUARES, "standard", {9: 5.5})
    assert load_weights(ready_db, Family.SQUARES, "standard") == {9: 5.5}


def test_weights_partitioned_by_family_and_profile(ready_db):
    save_weights(ready_db, Family.SQUARES, "standard", {9: 3.5})
    save_weights(ready_db, Family.SQUARES, "simplified", {9: 1.1})
    save_weights(ready_db, Family.ADDITION, "standard", {9: 0.6})
    assert load_weights(ready_db, Family.SQUARES, "standard") == {9: 3.5}
    assert load_weights(ready_db, Family.SQUARES, "simplified") == {9: 1.1}
    assert load_weights(ready_db, Family.ADDITION, "standard") == {9: 0.6}


def test_load_weights_missing_returns_empty(ready_db):
    assert load_weights(ready_db, Family.DIVISION, "standard") == {}


def test_load_weights_without_schema_returns_empty(tmp_db):
    """Unreadable store degrades to no stored weights."""
    assert load_weights(tmp_db, Family.SQUARES, "standard") == {}


def test_load_weights_malformed_returns_empty(ready_db):
    conn = get_connection(ready_db)
    conn.execute(
        "INSERT INTO operand_weights (family, profile, operand, weight) VALUES (?, ?, ?, ?)",
        ("SQUARES", "standard", 3, 1.2),
    )
    conn.execute(
        "INSERT INTO operand_weights (family, profile, operand, weight) VALUES (?, ?, ?, ?)",
        ("SQUARES", "standard", 4, "not a number"),
    )
    conn.commit()
    conn.close()
    assert load_weights(ready_db, Family.SQUARES, "standard") == {}


def test_load_weights_clamps_out_of_range(ready_db):
    conn = get_connection(ready_db)
    conn.execute(
        "INSERT INTO operand_weights (family, profile, operand, weight) VALUES ('SQUARES', 'standard', 3, 42.0)"
    )
    conn.execute(
        "INSERT INTO operand_weights (family, profile, operand, weight) VALUES ('SQUARES', 'standard', 4, 0.1)"
    )
    conn.commit()
    conn.close()
    assert load_weights(ready_db, Family.SQUARES, "standard") == {3: MAX_WEIGHT, 4: MIN_WEIGHT}


def test_clamp_weights():
    assert clamp_weights(None) == {}
    assert clamp_weights([1.0]) == {}
    assert clamp_weights({3: 0.1, 4: 42, 5: 1.2}) == {3: MIN_WEIGHT, 4: MAX_WEIGHT, 5: 1.2}
    assert clamp_weights({3: "x", 4: float("nan"), 5: -1.0, True: 2.0, "6": 2.0}) == {}


def test_save_weights_failure_is_swallowed(tmp_path):
    """A directory path can't be opened as a database; save is skipped."""
    save_weights(str(tmp_path), Family.SQUARES, "standard", {9: 3.5})


def test_clear_weights_all(ready_db):
    save_weights(ready_db, Family.SQUARES, "standard", {9: 3.5})
    save_weights(ready_db, Family.ADDITION, "simplified", {2: 1.1})
    clear_weights(ready_db)
    assert load_weights(ready_db, Family.SQUARES, "standard") == {}
    assert load_weights(ready_db, Family.ADDITION, "simplified") == {}


def test_clear_weights_single_profile(ready_db):
    save_weights(ready_db, Family.SQUARES, "standard", {9: 3.5})
    save_weights(ready_db, Family.SQUARES, "simplified", {9: 1.1})
    clear_weights(ready_db, profile="simplified")
    assert load_weights(ready_db, Family.SQUARES, "standard") == {9: 3.5}
    assert load_weights(ready_db, Family.SQUARES, "simplified") == {}


def test_sqlite_weight_store_roundtrip(ready_db):
    store = SqliteWeightStore(ready_db)
    store.save_weights(Family.DIVISION, "standard", {3: 2.0})
    assert store.load_weights(Family.DIVISION, "standard") == {3: 2.0}
