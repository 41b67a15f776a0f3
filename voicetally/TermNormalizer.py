# voicetally/TermNormalizer.py
import unicodedata
from typing import Dict, Iterable


class TermNormalizer:
    """Normalizes target words, homophones and transcripts so they compare
    equal regardless of case, Unicode representation or spacing.

    The same normalization is applied to both sides of a match, so a term
    typed in settings and the same word produced by the speech engine end up
    as identical strings. Punctuation is preserved: word boundaries, not token
    equality, decide whether a term matches.
    """

    def __init__(self):
        """Initialize the normalizer with language-specific character mappings."""
        self.character_replacements: Dict[str, str] = {
            # German ß handling
            'ß': 'ss',
            # Russian ё handling
            'ё': 'е',
        }

    def normalize(self, text: str) -> str:
        """Normalize a term or transcript.

        Performs the following steps:
        1. Unicode normalization (NFC composition)
        2. Case normalization to lowercase
        3. Language-specific character replacements
        4. Whitespace cleanup (trim, collapse runs to a single space)

        Args:
            text: Input text, may be None or empty

        Returns:
            Normalized text, '' for blank input
        """
        if not text:
            return ""

        normalized = unicodedata.normalize('NFC', text).lower()

        for original, replacement in self.character_replacements.items():
            normalized = normalized.replace(original, replacement)

        return ' '.join(normalized.split())

    def normalize_terms(self, terms: Iterable[str]) -> tuple[str, ...]:
        """Normalize a list of aliases, dropping blanks and duplicates.

        Order of first appearance is kept.
        """
        result: list[str] = []
        for term in terms:
            normalized = self.normalize(term)
            if normalized and normalized not in result:
                result.append(normalized)
        return tuple(result)
