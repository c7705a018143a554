"""Tests for distribution parsing and weighted selection."""

from __future__ import annotations

import random

import pytest

from src.generator.distribution import (
    UNKNOWN_VALUE,
    DistributionTable,
    WeightedValue,
    parse_distribution,
)
from src.generator.exceptions import DistributionError, GeneratorError


# ── Parsing ─────────────────────────────────────────────────────


class TestParseDistribution:
    def test_well_formed(self) -> None:
        assert parse_distribution("A:30,B:70") == {"A": 30, "B": 70}

    def test_whitespace_trimmed(self) -> None:
        assert parse_distribution(" A : 30 , B:70 ") == {"A": 30, "B": 70}

    def test_blank_segments_ignored(self) -> None:
        assert parse_distribution("A:30,, ,B:70,") == {"A": 30, "B": 70}

    def test_single_value(self) -> None:
        assert parse_distribution("HIGH:100") == {"HIGH": 100}

    def test_zero_weight_entry_kept(self) -> None:
        assert parse_distribution("A:0,B:100") == {"A": 0, "B": 100}

    def test_empty_string_rejected(self) -> None:
        with pytest.raises(DistributionError, match="empty"):
            parse_distribution("")

    @pytest.mark.parametrize("dist", ["A:30,B:60", "A:50,B:60", "A:99"])
    def test_sum_not_100_rejected(self, dist: str) -> None:
        with pytest.raises(DistributionError, match="sum to 100"):
            parse_distribution(dist)

    def test_negative_percentage_rejected(self) -> None:
        with pytest.raises(DistributionError, match="0-100"):
            parse_distribution("A:-10,B:110")

    def test_over_100_rejected(self) -> None:
        with pytest.raises(DistributionError, match="0-100"):
            parse_distribution("A:101")

    def test_extra_colon_rejected(self) -> None:
        with pytest.raises(DistributionError, match="KEY:PERCENT"):
            parse_distribution("A:50:EXTRA,B:50")

    def test_missing_colon_rejected(self) -> None:
        with pytest.raises(DistributionError, match="KEY:PERCENT"):
            parse_distribution("A50,B:50")

    @pytest.mark.parametrize("pct", ["abc", "12.5", "", "1e2"])
    def test_non_integer_rejected(self, pct: str) -> None:
        with pytest.raises(DistributionError, match="invalid percentage"):
            parse_distribution(f"A:{pct},B:50")

    def test_duplicate_key_last_wins_but_both_count(self) -> None:
        # 40 + 60 = 100 is accepted even though only one A survives
        assert parse_distribution("A:40,A:60") == {"A": 60}

    def test_duplicate_key_sum_check_uses_every_occurrence(self) -> None:
        with pytest.raises(DistributionError):
            parse_distribution("A:50,A:50,B:10")

    def test_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_distribution("nonsense")
        assert issubclass(DistributionError, GeneratorError)


# ── Table ───────────────────────────────────────────────────────


class TestDistributionTable:
    def test_parse_preserves_order(self) -> None:
        table = DistributionTable.parse("HIGH:30,MEDIUM:30,LOW:25,CRITICAL:15")
        assert [e.value for e in table] == ["HIGH", "MEDIUM", "LOW", "CRITICAL"]
        assert table.total_weight == 100
        assert len(table) == 4

    def test_as_dict(self) -> None:
        table = DistributionTable.parse("A:30,B:70")
        assert table.as_dict() == {"A": 30, "B": 70}

    def test_entries_are_frozen(self) -> None:
        entry = WeightedValue(value="A", weight=10)
        with pytest.raises(Exception):
            entry.weight = 20  # type: ignore[misc]

    def test_repr(self) -> None:
        assert "A:30,B:70" in repr(DistributionTable.parse("A:30,B:70"))


class TestSelect:
    def test_single_value_always_selected(self) -> None:
        table = DistributionTable.parse("only:100")
        rng = random.Random(1)
        assert {table.select(rng) for _ in range(200)} == {"only"}

    def test_zero_weight_never_selected(self) -> None:
        table = DistributionTable.parse("never:0,always:100")
        rng = random.Random(7)
        assert "never" not in {table.select(rng) for _ in range(2_000)}

    def test_empty_table_returns_unknown(self) -> None:
        assert DistributionTable([]).select(random.Random(1)) == UNKNOWN_VALUE

    def test_all_zero_weights_return_unknown(self) -> None:
        table = DistributionTable([WeightedValue(value="A", weight=0)])
        assert table.select(random.Random(1)) == UNKNOWN_VALUE

    def test_weighted_fairness(self) -> None:
        table = DistributionTable.parse("A:90,B:10")
        rng = random.Random(12345)
        draws = 100_000
        hits = sum(1 for _ in range(draws) if table.select(rng) == "A")
        assert abs(hits / draws - 0.90) < 0.01

    def test_same_seed_same_sequence(self) -> None:
        table = DistributionTable.parse("A:25,B:25,C:25,D:25")
        rng_a, rng_b = random.Random(99), random.Random(99)
        seq_a = [table.select(rng_a) for _ in range(500)]
        seq_b = [table.select(rng_b) for _ in range(500)]
        assert seq_a == seq_b
