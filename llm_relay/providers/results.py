"""Joining provider outcomes into ProviderExecutionResult lists."""

import json
import time
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from ..models import OutputType, ProviderExecutionResult, SentencePair


@dataclass(frozen=True)
class StructuredOutput:
    text: str
    supplemental_texts: Tuple[str, ...] = ()
    sentence_pairs: Tuple[SentencePair, ...] = ()


def _load_json_object(text: str) -> Optional[dict]:
    candidate = text.strip()
    if candidate.startswith("```"):
        candidate = candidate.strip("`")
        if candidate.startswith("json"):
            candidate = candidate[len("json"):]
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def parse_structured_output(output_type: OutputType, text: str) -> StructuredOutput:
    """
    Unpack a structured model answer.

    Plain answers, and structured answers that turn out not to be JSON, are
    returned unchanged.
    """
    if not output_type.is_structured:
        return StructuredOutput(text)
    data = _load_json_object(text)
    if data is None:
        return StructuredOutput(text)

    if output_type is OutputType.SENTENCE_PAIRS:
        pairs = tuple(
            SentencePair(item["original"], item["translation"])
            for item in data.get("sentence_pairs") or []
            if isinstance(item, dict)
            and isinstance(item.get("original"), str)
            and isinstance(item.get("translation"), str)
        )
        joined = "\n".join(pair.translation for pair in pairs)
        return StructuredOutput(joined or text, sentence_pairs=pairs)

    revised = data.get("revised_text")
    additional = data.get("additional_text")
    supplemental = (additional.strip(),) if isinstance(additional, str) and additional.strip() else ()
    if isinstance(revised, str) and revised.strip():
        return StructuredOutput(revised.strip(), supplemental_texts=supplemental)
    return StructuredOutput(text, supplemental_texts=supplemental)


class ResultCollector:
    """
    Stamps outcomes with the time elapsed since the dispatch started.

    Errors are stored exactly as raised so callers can branch on their type.
    """

    def __init__(self, clock: Callable[[], float] = time.perf_counter):
        self._clock = clock
        self._started = clock()

    def elapsed(self) -> float:
        return self._clock() - self._started

    def success(
        self,
        provider_id: str,
        text: str,
        *,
        incomplete: bool = False,
        diff_source: Optional[str] = None,
        supplemental_texts: Sequence[str] = (),
        sentence_pairs: Sequence[SentencePair] = (),
    ) -> ProviderExecutionResult:
        return ProviderExecutionResult(
            provider_id=provider_id,
            duration=self.elapsed(),
            text=text,
            diff_source=diff_source,
            supplemental_texts=tuple(supplemental_texts),
            sentence_pairs=tuple(sentence_pairs),
            incomplete=incomplete,
        )

    def failure(self, provider_id: str, error: BaseException) -> ProviderExecutionResult:
        return ProviderExecutionResult(provider_id=provider_id, duration=self.elapsed(), error=error)

    @staticmethod
    def collect(outcomes: Iterable[Optional[ProviderExecutionResult]]) -> List[ProviderExecutionResult]:
        """Drop the providers that never produced an outcome."""
        return [outcome for outcome in outcomes if outcome is not None]
