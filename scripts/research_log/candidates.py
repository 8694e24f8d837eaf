"""
Candidate word lists for typo classification.

A CandidateList is the ranked set of words offered to the user the first
time a word was typed or gestured. LexiconSuggester builds such lists from
a plain word list using BM25 over character n-grams.
"""

from typing import Any, Dict, Iterable, Iterator, List, Optional

from rank_bm25 import BM25Okapi

from .config import config
from .schema import Payload


class CandidateList(Payload):
    """Immutable, ranked list of candidate words."""

    def __init__(self, words: Iterable[str] = (), typed_word_valid: bool = False):
        self._words = tuple(words)
        self._typed_word_valid = typed_word_valid

    @property
    def words(self):
        return self._words

    @property
    def typed_word_valid(self) -> bool:
        return self._typed_word_valid

    def __contains__(self, word) -> bool:
        return word in self._words

    def __len__(self) -> int:
        return len(self._words)

    def __iter__(self) -> Iterator[str]:
        return iter(self._words)

    def __getitem__(self, index):
        return self._words[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, CandidateList):
            return NotImplemented
        return (self._words, self._typed_word_valid) == (other._words, other._typed_word_valid)

    def __hash__(self):
        return hash((self._words, self._typed_word_valid))

    def __repr__(self) -> str:
        return f"CandidateList({list(self._words)!r})"

    def to_json(self) -> Dict[str, Any]:
        return {"words": list(self._words), "typedWordValid": self._typed_word_valid}


def tokenize_word(word: str, ngram_size: int = 2) -> List[str]:
    """
    Split a word into boundary-marked character n-grams.

    "cat" with ngram_size=2 becomes ["^c", "ca", "at", "t$"].
    """
    padded = f"^{word.lower()}$"
    if len(padded) <= ngram_size:
        return [padded]
    return [padded[i:i + ngram_size] for i in range(len(padded) - ngram_size + 1)]


class LexiconSuggester:
    """Ranks lexicon words by n-gram overlap with a typing attempt."""

    def __init__(
        self,
        lexicon: Iterable[str],
        ngram_size: Optional[int] = None,
        max_candidates: Optional[int] = None
    ):
        """
        Initialize suggester.

        Args:
            lexicon: Known words, in preference order for ties
            ngram_size: Character n-gram length (default from config)
            max_candidates: Maximum words per suggestion list (default from config)
        """
        self.lexicon = [w for w in lexicon if w and w.strip()]
        self.ngram_size = ngram_size or config.get('suggestions.ngram_size', 2)
        self.max_candidates = max_candidates or config.get('suggestions.max_candidates', 5)

        self.bm25 = None
        if self.lexicon:
            corpus = [tokenize_word(w, self.ngram_size) for w in self.lexicon]
            self.bm25 = BM25Okapi(corpus)

    def suggest(self, attempt: str) -> CandidateList:
        """
        Rank lexicon words against a typing attempt.

        Args:
            attempt: The characters the user typed

        Returns:
            CandidateList of positively scored words, best first
        """
        if self.bm25 is None or not attempt or not attempt.strip():
            return CandidateList()

        scores = self.bm25.get_scores(tokenize_word(attempt, self.ngram_size))
        ranked = sorted(
            (i for i, score in enumerate(scores) if score > 0),
            key=lambda i: (-scores[i], i)
        )
        words = [self.lexicon[i] for i in ranked[:self.max_candidates]]
        return CandidateList(words, typed_word_valid=attempt in self.lexicon)
