"""
Unit tests for the Context Selector.

Covers keyword extraction, tag prioritization, scoring, two-tier ordering,
determinism and primer rendering.
"""

from datetime import datetime, timezone

import pytest

from sylvia.config import ContextConfig
from sylvia.memory.context import (
    ContextSelector,
    extract_history_tags,
    extract_keywords,
    format_primer,
    score_memory,
)
from sylvia.memory.models import HistoryTurn, Memory, MemoryPayload, PerformerMemory, TagScore


def _memory(mid, tags, relevance, summary=None):
    return Memory(
        id=mid,
        summary=summary or f"memory {mid}",
        tags=tags,
        relevance=relevance,
        timestamp=datetime(2025, 3, 14, tzinfo=timezone.utc),
    )


def _scores(**scores):
    return [TagScore(tag=tag, score=score) for tag, score in scores.items()]


@pytest.fixture
def selector():
    return ContextSelector(ContextConfig())


# ============================================================================
# Keywords
# ============================================================================


class TestExtractKeywords:
    """Tests for utterance keyword extraction."""

    def test_min_length_and_case_fold(self):
        assert extract_keywords("The Q3 PRICING plan is due") == ["pricing", "plan"]

    def test_deduplicated_in_first_seen_order(self):
        assert extract_keywords("budget Budget BUDGET review") == ["budget", "review"]

    def test_capped(self):
        text = " ".join(f"word{i:02d}" for i in range(20))
        assert len(extract_keywords(text, limit=12)) == 12

    def test_markdown_noise_ignored(self):
        assert extract_keywords("**pricing** and `budget`") == ["pricing", "budget"]

    def test_empty(self):
        assert extract_keywords("") == []
        assert extract_keywords(None) == []


class TestHistoryTags:
    """Tests for tags carried by recent history turns."""

    def test_most_recent_turn_first(self):
        history = [
            HistoryTurn("assistant", "a", MemoryPayload("s", ["old"])),
            HistoryTurn("user", "b"),
            HistoryTurn("assistant", "c", MemoryPayload("s", ["#New", "old"])),
        ]
        assert extract_history_tags(history) == ["new", "old"]

    def test_only_last_turns_considered(self):
        history = [HistoryTurn("assistant", "x", MemoryPayload("s", ["ancient"]))]
        history += [HistoryTurn("user", "filler") for _ in range(12)]
        assert extract_history_tags(history, turns=12) == []

    def test_capped(self):
        history = [HistoryTurn("assistant", "x", MemoryPayload("s", [f"t{i}" for i in range(6)])) for _ in range(3)]
        history[1] = HistoryTurn("assistant", "y", MemoryPayload("s", [f"u{i}" for i in range(6)]))
        history[0] = HistoryTurn("assistant", "z", MemoryPayload("s", [f"v{i}" for i in range(6)]))
        assert len(extract_history_tags(history, limit=12)) == 12


# ============================================================================
# Prioritization
# ============================================================================


class TestPrioritizeTags:
    """Tests for prioritized tag selection."""

    def test_keyword_tags_ranked_by_score(self, selector):
        tags = selector.prioritize_tags(["budget", "pricing"], _scores(pricing=5, budget=9, weather=1))
        assert tags[:2] == ["budget", "pricing"]

    def test_filled_with_global_top_tags(self, selector):
        scores = _scores(pricing=5, weather=7, travel=3)
        assert selector.prioritize_tags(["pricing"], scores) == ["pricing", "weather", "travel"]

    def test_capped_at_limit(self):
        selector = ContextSelector(ContextConfig(prioritized_tag_limit=2))
        assert selector.prioritize_tags([], _scores(a=3, b=2, c=1)) == ["a", "b"]

    def test_no_known_tags(self, selector):
        assert selector.prioritize_tags(["pricing"], []) == []


# ============================================================================
# Scoring and selection
# ============================================================================


class TestSelectContext:
    """Tests for ContextSelector.select_context()."""

    def test_worked_scenario(self, selector):
        priced = _memory(1, ["pricing", "q3"], 6)
        weather = _memory(2, ["weather"], 9)

        selection = selector.select_context(
            "What about pricing?", [], [weather, priced], _scores(pricing=5)
        )

        assert selection.prioritized_tags == ["pricing"]
        scores = {item.memory.id: item.score for item in selection.scored}
        assert scores[1] == pytest.approx(23)
        assert scores[2] == pytest.approx(18)
        assert [m.id for m in selection.memories] == [1, 2]

    def test_keyword_bonus(self):
        memory = _memory(1, ["pricing", "budget"], 1)
        assert score_memory(memory, {"budget"}, set(), {}) == pytest.approx(4)

    def test_prioritized_memory_dominates_higher_raw_score(self, selector):
        tagged = _memory(1, ["pricing"], 0)
        untagged = _memory(2, ["misc"], 10)

        selection = selector.select_context("pricing", [], [untagged, tagged], _scores(pricing=0.6))

        assert [m.id for m in selection.memories] == [1, 2]

    def test_monotonic_in_relevance(self, selector):
        memories = [_memory(i, ["pricing"], relevance) for i, relevance in enumerate([2, 7, 4], start=1)]
        selection = selector.select_context("pricing", [], memories, _scores(pricing=1))

        assert [m.id for m in selection.memories] == [2, 3, 1]

    def test_ties_keep_input_order(self, selector):
        memories = [_memory(i, ["same"], 5) for i in (3, 1, 2)]
        selection = selector.select_context("nothing here", [], memories, [])

        assert [m.id for m in selection.memories] == [3, 1, 2]

    def test_deterministic(self, selector):
        memories = [_memory(i, ["pricing" if i % 2 else "misc", f"t{i}"], i % 5) for i in range(1, 30)]
        scores = _scores(pricing=4, misc=2, t3=9)

        first = selector.select_context("pricing strategy", [], memories, scores)
        second = selector.select_context("pricing strategy", [], memories, scores)

        assert [m.id for m in first.memories] == [m.id for m in second.memories]
        assert first.primer == second.primer

    def test_limit(self, selector):
        memories = [_memory(i, ["x"], 5) for i in range(1, 20)]
        assert len(selector.select_context("x", [], memories, [], limit=4).memories) == 4
        assert len(selector.select_context("x", [], memories, []).memories) == 10

    def test_empty_memory_set(self, selector):
        selection = selector.select_context("pricing", [], [], _scores(pricing=5))
        assert selection.memories == []
        assert selection.primer == ""

    def test_no_prioritized_tags_orders_by_score(self, selector):
        memories = [_memory(1, ["a"], 2), _memory(2, ["b"], 9)]
        selection = selector.select_context("", [], memories, [])

        assert selection.prioritized_tags == []
        assert [m.id for m in selection.memories] == [2, 1]

    def test_history_tags_count_as_keywords(self):
        selector = ContextSelector(ContextConfig(prioritized_tag_limit=0))
        history = [HistoryTurn("assistant", "ok", MemoryPayload("s", ["budget"]))]
        memories = [_memory(1, ["budget"], 1), _memory(2, ["other"], 1)]

        selection = selector.select_context("hello", history, memories, [])

        assert "budget" in selection.keywords
        assert [m.id for m in selection.memories] == [1, 2]

    def test_does_not_mutate_memories(self, selector):
        memory = _memory(1, ["pricing"], 4)
        selector.select_context("pricing", [], [memory], _scores(pricing=3))
        assert memory.relevance == 4


class TestSelectPerformerContext:
    """Tests for performer-scoped selection."""

    def test_only_own_memories(self, selector):
        memories = [
            PerformerMemory(id=1, performer_id="nova", summary="mine", tags=["drama"]),
            PerformerMemory(id=2, performer_id="rex", summary="theirs", tags=["drama"]),
        ]
        selection = selector.select_performer_context("nova", "drama", [], memories, _scores(drama=2))

        assert [m.id for m in selection.memories] == [1]


# ============================================================================
# Primer
# ============================================================================


class TestFormatPrimer:
    """Tests for primer rendering."""

    def test_line_format(self):
        memory = _memory(1, ["pricing", "q3"], 5, summary="Client wants Q3 pricing review")
        assert format_primer([memory]) == "- 2025-03-14 • Client wants Q3 pricing review (#pricing #q3)"

    def test_at_most_four_tags(self):
        memory = _memory(1, ["a", "b", "c", "d", "e"], 5, summary="s")
        assert format_primer([memory]).endswith("(#a #b #c #d)")

    def test_whitespace_in_tag_hyphenated(self):
        memory = _memory(1, ["q3 plan"], 5, summary="s")
        assert "#q3-plan" in format_primer([memory])

    def test_one_line_per_memory(self):
        memories = [_memory(i, ["x"], 5) for i in range(3)]
        assert len(format_primer(memories).splitlines()) == 3
