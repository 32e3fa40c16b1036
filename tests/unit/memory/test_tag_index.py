"""
Unit tests for the Tag Score Index.
"""

import pytest

from sylvia.memory.tag_index import compute_score


class TestComputeScore:
    """Tests for the weighting formula."""

    def test_weights(self):
        assert compute_score(5, 0) == 3.0
        assert compute_score(0, 2) == 2.4
        assert compute_score(3, 1) == 3.0

    def test_rounded_to_two_places(self):
        assert compute_score(1, 1) == 1.8


class TestRecordTagUsage:
    """Tests for TagScoreIndex.record_tag_usage()."""

    def test_memory_usage_weighted_by_relevance(self, tag_index):
        tag_index.record_tag_usage(["pricing"], "memory", relevance=6.4)

        entry = tag_index.get("pricing")
        assert entry.memory_count == 6
        assert entry.knowledge_count == 0
        assert entry.score == 3.6

    def test_low_relevance_counts_at_least_once(self, tag_index):
        tag_index.record_tag_usage(["pricing"], "memory", relevance=0)
        assert tag_index.get("pricing").memory_count == 1

    def test_knowledge_usage_counts_one(self, tag_index):
        tag_index.record_tag_usage(["acme"], "knowledge", relevance=9)

        entry = tag_index.get("acme")
        assert entry.knowledge_count == 1
        assert entry.memory_count == 0
        assert entry.score == 1.2

    def test_tags_normalized_and_deduplicated(self, tag_index):
        updated = tag_index.record_tag_usage(["#Pricing", "pricing", "Q3 Plan"], "memory", relevance=1)

        assert [e.tag for e in updated] == ["pricing", "q3-plan"]
        assert tag_index.get("pricing").memory_count == 1

    def test_empty_tags_is_noop(self, tag_index):
        assert tag_index.record_tag_usage([], "memory") == []
        assert tag_index.get_tag_scores() == []

    def test_unknown_kind_rejected(self, tag_index):
        with pytest.raises(ValueError):
            tag_index.record_tag_usage(["a"], "other")

    def test_score_never_decreases(self, tag_index):
        previous = 0.0
        for kind, relevance in [("memory", 2), ("knowledge", None), ("memory", 0), ("knowledge", None)]:
            tag_index.record_tag_usage(["pricing"], kind, relevance=relevance)
            score = tag_index.get("pricing").score
            assert score > previous
            previous = score


class TestGetTagScores:
    """Tests for TagScoreIndex.get_tag_scores()."""

    def test_sorted_by_score_descending(self, tag_index):
        tag_index.record_tag_usage(["low"], "memory", relevance=1)
        tag_index.record_tag_usage(["high"], "memory", relevance=9)
        tag_index.record_tag_usage(["mid"], "memory", relevance=5)

        assert [e.tag for e in tag_index.get_tag_scores()] == ["high", "mid", "low"]

    def test_reads_reflect_writes_across_instances(self, tag_index, temp_db):
        from sylvia.memory.tag_index import TagScoreIndex

        tag_index.record_tag_usage(["pricing"], "memory", relevance=3)
        other = TagScoreIndex(temp_db)
        assert other.get("pricing").memory_count == 3
