from clear_editor.merge import anchor_fallback, merge, plan_highlights
from clear_editor.models import Range

import pytest

from conftest import SAMPLE


def test_overlapping_ranges_coalesce():
    assert merge([Range(5, 10), Range(8, 15)]) == [Range(5, 15)]


def test_touching_ranges_coalesce_and_output_is_sorted():
    assert merge([Range(20, 25), Range(3, 5), Range(0, 3)]) == [Range(0, 5), Range(20, 25)]


def test_contained_range_keeps_outer_end():
    assert merge([Range(0, 20), Range(4, 6)]) == [Range(0, 20)]


def test_merge_is_idempotent_and_disjoint():
    ranges = [Range(9, 12), Range(1, 4), Range(3, 6), Range(30, 31), Range(11, 14), Range(20, 22)]
    once = merge(ranges)
    assert merge(once) == once
    assert all(a.end < b.start for a, b in zip(once, once[1:]))


def test_range_rejects_empty_or_negative():
    with pytest.raises(ValueError):
        Range(3, 3)
    with pytest.raises(ValueError):
        Range(-1, 2)


def test_anchor_fallback_uses_first_long_word_of_first_fragment():
    text = "The weather was grey today."
    assert anchor_fallback(text, ["My weather report", "something else"]) == Range(4, 11)


def test_anchor_fallback_needs_text_and_fragments():
    assert anchor_fallback("   ", ["weather"]) is None
    assert anchor_fallback("The weather", []) is None
    assert anchor_fallback("The weather", ["Oh, no"]) is None


def test_plan_reports_fallback_and_drops():
    plan = plan_highlights("The weather was grey today.", ["My weather report"])
    assert plan.used_fallback
    assert plan.dropped == 1
    assert plan.ranges == [Range(4, 11)]


def test_plan_orders_ranges_by_document_position():
    plan = plan_highlights(SAMPLE, ["Then I slept.", "I walked home.", "zebra crossing"])
    assert plan.ranges == [Range(0, 14), Range(32, 45)]
    assert plan.dropped == 1
    assert not plan.used_fallback


def test_plan_with_nothing_to_anchor():
    plan = plan_highlights(SAMPLE, ["zebra crossing"])
    assert plan.ranges == []
    assert not plan.used_fallback
