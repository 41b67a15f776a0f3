# tests/test_word_matcher.py
import unittest

from voicetally.WordMatcher import WordMatcher
from voicetally.types import Detection, TargetWord, default_tally_state


class TestWordMatcher(unittest.TestCase):
    """Test whole-word detection of target words and homophones."""

    def setUp(self):
        """Set up test fixtures."""
        self.matcher = WordMatcher()
        self.targets = default_tally_state().target_words

    def test_counts_every_occurrence(self):
        """Test that a repeated word yields one detection per occurrence."""
        result = self.matcher.match("I said hello hello", self.targets)

        self.assertEqual(result, [Detection('1', 'hello'), Detection('1', 'hello')])

    def test_homophone_attributed_to_owner(self):
        """Test that an alias counts for its target and reports the alias."""
        result = self.matcher.match("the halo effect", self.targets)

        self.assertEqual(result, [Detection('1', 'halo')])

    def test_partial_word_does_not_match(self):
        result = self.matcher.match("helloooo there", self.targets)
        self.assertEqual(result, [])

        result = self.matcher.match("othello", self.targets)
        self.assertEqual(result, [])

    def test_detections_follow_target_order(self):
        """Test that detections are ordered by target declaration order."""
        result = self.matcher.match("world hello", self.targets)

        self.assertEqual([d.target_id for d in result], ['1', '2'])

    def test_case_and_punctuation(self):
        result = self.matcher.match("Hello, WORLD!", self.targets)

        self.assertEqual(result, [Detection('1', 'hello'), Detection('2', 'world')])

    def test_empty_inputs(self):
        self.assertEqual(self.matcher.match("", self.targets), [])
        self.assertEqual(self.matcher.match("   ", self.targets), [])
        self.assertEqual(self.matcher.match("hello", ()), [])

    def test_already_matched_terms_are_skipped(self):
        """Test that terms passed in already_matched_terms are not matched again."""
        already = {'hello'}

        result = self.matcher.match("hello halo", self.targets, already)

        self.assertEqual(result, [Detection('1', 'halo')])
        self.assertEqual(already, {'hello'})

    def test_shared_term_goes_to_first_target(self):
        """Test that a term listed by two targets is only counted for the first."""
        targets = (
            TargetWord(id='a', word='hello', homophones=('halo',)),
            TargetWord(id='b', word='angel', homophones=('halo',)),
        )

        result = self.matcher.match("a halo", targets)

        self.assertEqual(result, [Detection('a', 'halo')])

    def test_overlapping_terms_within_target_count_once(self):
        """Test that an alias inside an already claimed phrase is not counted again."""
        targets = (TargetWord(id='ny', word='new york', homophones=('york',)),)

        result = self.matcher.match("new york and old york", targets)

        self.assertEqual(result, [Detection('ny', 'new york'), Detection('ny', 'york')])

    def test_multi_word_and_extra_spaces(self):
        targets = (TargetWord(id='ny', word='new york'),)

        result = self.matcher.match("I love  New   York.", targets)

        self.assertEqual(result, [Detection('ny', 'new york')])

    def test_terms_with_regex_characters(self):
        targets = (TargetWord(id='c', word='c++'),)

        self.assertEqual(self.matcher.match("I write c++ daily", targets), [Detection('c', 'c++')])
        self.assertEqual(self.matcher.match("I write c daily", targets), [])

    def test_stored_terms_are_normalized_before_matching(self):
        """Test that terms not yet normalized still match."""
        targets = (TargetWord(id='s', word='Straße'),)

        result = self.matcher.match("die strasse", targets)

        self.assertEqual(result, [Detection('s', 'strasse')])


if __name__ == '__main__':
    unittest.main()
