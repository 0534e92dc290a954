"""Tests for result collection and structured output parsing."""

import json

import pytest

from llm_relay.errors import ContentError
from llm_relay.models import OutputType, ProviderExecutionResult
from llm_relay.providers.results import ResultCollector, parse_structured_output


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_plain_output_is_untouched():
    assert parse_structured_output(OutputType.PLAIN, '{"revised_text": "x"}').text == '{"revised_text": "x"}'


def test_fenced_grammar_check_is_unpacked():
    body = json.dumps({"revised_text": " Fixed. ", "additional_text": ""})
    output = parse_structured_output(OutputType.GRAMMAR_CHECK, f"```json\n{body}\n```")

    assert output.text == "Fixed."
    assert output.supplemental_texts == ()


def test_structured_output_that_is_not_json_falls_back_to_text():
    output = parse_structured_output(OutputType.SENTENCE_PAIRS, "Just a sentence.")

    assert output.text == "Just a sentence."
    assert output.sentence_pairs == ()


def test_malformed_sentence_pairs_are_skipped():
    body = json.dumps({"sentence_pairs": [{"original": "A."}, {"original": "B.", "translation": "Be."}, "junk"]})

    output = parse_structured_output(OutputType.SENTENCE_PAIRS, body)

    assert output.text == "Be."
    assert len(output.sentence_pairs) == 1


def test_collector_stamps_elapsed_time():
    clock = FakeClock()
    collector = ResultCollector(clock=clock)
    clock.now += 1.5

    result = collector.success("p1", "hello", incomplete=True)

    assert result.duration == pytest.approx(1.5)
    assert result.succeeded and result.incomplete


def test_failure_keeps_the_original_error():
    error = ContentError()

    result = ResultCollector().failure("p1", error)

    assert result.error is error
    assert result.text is None
    assert not result.succeeded


def test_collect_drops_missing_outcomes():
    collector = ResultCollector()
    kept = collector.success("p1", "a")

    assert ResultCollector.collect([None, kept, None]) == [kept]


@pytest.mark.parametrize("kwargs", [{}, {"text": "a", "error": ContentError()}])
def test_result_needs_exactly_one_of_text_or_error(kwargs):
    with pytest.raises(ValueError):
        ProviderExecutionResult(provider_id="p1", duration=0.0, **kwargs)
