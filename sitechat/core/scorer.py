from dataclasses import dataclass
from typing import Iterable, List, Optional

from sitechat.config import RETRIEVAL
from sitechat.ingestion.base import PassageChunk


@dataclass(frozen=True)
class ScoredPassage:
    passage: PassageChunk
    score: int


class RelevanceScorer:
    """Lexical-overlap relevance: how many distinct question terms a passage contains."""

    def __init__(self, min_token_length: int = RETRIEVAL["min_token_length"]):
        # tokens of this length or shorter are ignored
        self.min_token_length = min_token_length

    def terms(self, question: str) -> List[str]:
        seen = []
        for token in question.lower().split():
            if len(token) > self.min_token_length and token not in seen:
                seen.append(token)
        return seen

    def score(self, question: str, content: str) -> int:
        haystack = content.lower()
        return sum(1 for term in self.terms(question) if term in haystack)

    def score_all(self, question: str, passages: Iterable[PassageChunk]) -> List[ScoredPassage]:
        terms = self.terms(question)
        scored = []
        for passage in passages:
            haystack = passage.content.lower()
            scored.append(ScoredPassage(passage, sum(1 for t in terms if t in haystack)))
        return scored

    def filter(
        self,
        question: str,
        passages: Iterable[PassageChunk],
        min_score: int = 1,
        min_length_override: Optional[int] = None,
    ) -> List[PassageChunk]:
        """Passages scoring at least ``min_score``, in their original order.

        With ``min_length_override`` set, long passages are admitted even when
        they share no terms with the question.
        """
        kept = []
        for sp in self.score_all(question, passages):
            if sp.score >= min_score:
                kept.append(sp.passage)
            elif min_length_override is not None and len(sp.passage.content) >= min_length_override:
                kept.append(sp.passage)
        return kept
