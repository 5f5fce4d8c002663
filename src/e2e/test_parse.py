import pytest

from clear_editor.models import Thought
from clear_editor.parse import iter_object_spans, parse_thought


def test_fenced_json():
    raw = '```json\n{"question":"Why?","sentences":["a"]}\n```'
    assert parse_thought(raw) == Thought("Why?", ["a"])


def test_last_question_wins_sentences_accumulate():
    raw = '{"question":"A?"}{"question":"B?","sentences":["x","y"]}'
    assert parse_thought(raw) == Thought("B?", ["x", "y"])


def test_sentences_accumulate_in_order_with_duplicates():
    raw = '{"sentences":["one"]}\n{"question":"Q?","sentences":["two","one"]}'
    assert parse_thought(raw).sentences == ["one", "two", "one"]


def test_prose_around_the_object():
    raw = 'Sure! Here you go: {"question": " What mattered? ", "sentences": [" s "]} Hope it helps.'
    assert parse_thought(raw) == Thought("What mattered?", ["s"])


def test_braces_inside_strings_do_not_split_objects():
    raw = '{"question": "What about {this}?", "sentences": ["a } b"]}'
    assert parse_thought(raw) == Thought("What about {this}?", ["a } b"])


def test_nested_objects_stay_inside_their_parent():
    raw = '{"meta": {"model": "x"}, "question": "N?"}'
    assert list(iter_object_spans(raw)) == [raw]
    assert parse_thought(raw).question == "N?"


def test_stray_closing_brace_is_ignored():
    assert parse_thought('oops } {"question":"Q?"}').question == "Q?"


def test_bad_span_is_skipped_good_span_kept():
    raw = "{question: nope} {\"question\": \"Kept?\"}"
    assert parse_thought(raw).question == "Kept?"


def test_wrong_field_types_are_ignored_per_object():
    raw = '{"question": 5, "sentences": ["ok", 3, "  ", null]}{"question": "Real?", "sentences": "nope"}'
    assert parse_thought(raw) == Thought("Real?", ["ok"])


def test_free_text_becomes_the_question():
    assert parse_thought("  How did that feel?  ") == Thought("How did that feel?", [])


def test_unterminated_json_gives_empty_thought():
    assert parse_thought('{"question": "A?", ') == Thought("", [])


def test_non_object_json_gives_empty_thought():
    assert parse_thought("[1, 2]") == Thought("", [])


@pytest.mark.parametrize("raw", [
    None, "", "   ", "{", "}", "{{{{", "}}}}", "\\", '"', '{"a": "\\', "```", "```json```",
    "{" * 5000, "null", '{"question": {"nested": true}}', "\x00\x01",
])
def test_parse_is_total(raw):
    thought = parse_thought(raw)
    assert isinstance(thought.question, str)
    assert isinstance(thought.sentences, list)
