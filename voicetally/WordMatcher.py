# voicetally/WordMatcher.py
import re
from functools import lru_cache
from typing import Iterable, Optional, Sequence

from .TermNormalizer import TermNormalizer
from .types import Detection, TargetWord


@lru_cache(maxsize=512)
def _term_pattern(term: str) -> re.Pattern:
    """Whole-word pattern for a normalized term.

    Lookarounds instead of \\b so terms that start or end with punctuation
    (e.g. "c++") still require a non-word neighbour.
    """
    return re.compile(r'(?<!\w)' + re.escape(term) + r'(?!\w)')


def _overlaps(span: tuple[int, int], claimed: list[tuple[int, int]]) -> bool:
    start, end = span
    return any(start < c_end and c_start < end for c_start, c_end in claimed)


class WordMatcher:
    """Finds target words and their homophones in a transcript chunk.

    Stateless: match() is a pure function of its arguments, so the same
    instance can be shared between threads.

    Matching rules:
    - Transcript and terms are normalized the same way (case, Unicode, spaces)
    - A term matches only as a whole word; adjacent punctuation is fine
    - Every non-overlapping occurrence of a term is one detection
    - A term already matched in this chunk (by an earlier target, or listed in
      already_matched_terms) is not scanned again for another target
    - Within one target, a span claimed by one term is not counted again by
      another of its terms ("new york" with alias "york" counts once)

    Args:
        normalizer: Optional normalizer shared with the tally store
    """

    def __init__(self, normalizer: Optional[TermNormalizer] = None) -> None:
        self.normalizer: TermNormalizer = normalizer if normalizer is not None else TermNormalizer()

    def match(self,
              transcript: str,
              targets: Sequence[TargetWord],
              already_matched_terms: Iterable[str] = ()
              ) -> list[Detection]:
        """Return detections for one transcript chunk.

        Detections are ordered by target declaration order, then term order,
        then position in the transcript.

        Args:
            transcript: Raw transcript chunk
            targets: Target words in declaration order
            already_matched_terms: Terms that must not be matched again in this
                chunk. Not modified.

        Returns:
            One Detection per occurrence, attributed to the target that owns
            the term and carrying the term that matched
        """
        text = self.normalizer.normalize(transcript)
        if not text or not targets:
            return []

        matched_terms: set[str] = set(already_matched_terms)
        detections: list[Detection] = []

        for target in targets:
            claimed: list[tuple[int, int]] = []

            for raw_term in target.search_terms:
                term = self.normalizer.normalize(raw_term)
                if not term or term in matched_terms:
                    continue

                spans = [m.span() for m in _term_pattern(term).finditer(text)]
                spans = [span for span in spans if not _overlaps(span, claimed)]
                if not spans:
                    continue

                matched_terms.add(term)
                claimed.extend(spans)
                detections.extend(Detection(target_id=target.id, term=term) for _ in spans)

        return detections
