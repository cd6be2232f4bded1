"""Tests for ReactionAggregator."""

import pytest

from streamcart.domain.live.engagement.reactions import ReactionAggregator
from streamcart.utils.app_errors import AppError, AppErrorCode


class TestRecord:
    def test_record_counts_per_type(self):
        aggregator = ReactionAggregator()

        assert aggregator.record("se_1", "heart") == 1
        assert aggregator.record("se_1", "heart") == 2
        assert aggregator.record("se_1", "fire") == 1

        assert aggregator.snapshot("se_1") == {"heart": 2, "fire": 1}
        assert aggregator.total("se_1") == 3

    def test_sessions_are_independent(self):
        aggregator = ReactionAggregator()
        aggregator.record("se_1", "heart")
        aggregator.record("se_2", "fire")

        assert aggregator.snapshot("se_1") == {"heart": 1}
        assert aggregator.snapshot("se_2") == {"fire": 1}

    def test_record_rejects_empty_type(self):
        aggregator = ReactionAggregator()

        with pytest.raises(AppError) as exc_info:
            aggregator.record("se_1", "  ")

        assert exc_info.value.errcode == AppErrorCode.E_INVALID_REQUEST.value
        assert aggregator.has_tally("se_1") is False


class TestSnapshot:
    def test_snapshot_without_tally_is_none(self):
        """No data is distinct from an empty tally."""
        assert ReactionAggregator().snapshot("se_unknown") is None

    def test_snapshot_is_a_copy(self):
        aggregator = ReactionAggregator()
        aggregator.record("se_1", "heart")

        snapshot = aggregator.snapshot("se_1")
        snapshot["heart"] = 100

        assert aggregator.snapshot("se_1") == {"heart": 1}


class TestPercentages:
    def test_percentages_empty_when_no_reactions(self):
        assert ReactionAggregator().percentages("se_1") == {}

    def test_percentages_round_half_up(self):
        aggregator = ReactionAggregator()
        for reaction in ("heart", "heart", "heart", "fire"):
            aggregator.record("se_1", reaction)
        for _ in range(4):
            aggregator.record("se_2", "clap")
        aggregator.record("se_2", "wow")
        aggregator.record("se_2", "wow")
        aggregator.record("se_2", "wow")
        aggregator.record("se_2", "fire")

        assert aggregator.percentages("se_1") == {"heart": 75, "fire": 25}
        # 4/8 = 50, 3/8 = 37.5 -> 38, 1/8 = 12.5 -> 13
        assert aggregator.percentages("se_2") == {"clap": 50, "wow": 38, "fire": 13}

    def test_percentages_thirds(self):
        aggregator = ReactionAggregator()
        for reaction in ("a", "b", "c"):
            aggregator.record("se_1", reaction)

        assert aggregator.percentages("se_1") == {"a": 33, "b": 33, "c": 33}


class TestClear:
    def test_clear_drops_tally(self):
        aggregator = ReactionAggregator()
        aggregator.record("se_1", "heart")

        aggregator.clear("se_1")

        assert aggregator.snapshot("se_1") is None
        assert aggregator.total("se_1") == 0

    def test_clear_unknown_session_is_noop(self):
        ReactionAggregator().clear("se_unknown")
