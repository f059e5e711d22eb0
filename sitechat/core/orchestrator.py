"""
Knowledge Source Orchestrator
=============================
Drives one chat request through the retrieval-and-fallback pipeline:

    QUERY_INDEX -> SCORE_INDEX_RESULTS -> [FALLBACK_CRAWL] -> COMPOSE_ANSWER -> DONE

The pre-built vector index is cheap and always tried first. Live crawling of
the configured seed sites costs seconds to minutes and only runs when the
index yields fewer than ``FallbackPolicy.min_relevant`` passages scoring at
least ``FallbackPolicy.min_score``.

Any failure aborts the request as a whole; partial answers are never returned.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Sequence, Tuple

from sitechat.config import CRAWL, FALLBACK, RETRIEVAL
from sitechat.core.composer import ConversationTurn, PromptComposer, combine_documents
from sitechat.core.scorer import RelevanceScorer
from sitechat.errors import SiteChatError, UpstreamServiceError
from sitechat.ingestion.base import PassageChunk


class ChatState(str, Enum):
    QUERY_INDEX = "query_index"
    SCORE_INDEX_RESULTS = "score_index_results"
    FALLBACK_CRAWL = "fallback_crawl"
    COMPOSE_ANSWER = "compose_answer"
    DONE = "done"


@dataclass(frozen=True)
class FallbackPolicy:
    min_score: int = FALLBACK["min_score"]
    min_relevant: int = FALLBACK["min_relevant"]
    crawl_enabled: bool = FALLBACK["enabled"]
    seed_urls: Tuple[str, ...] = tuple(FALLBACK["seed_urls"])
    page_budget: int = CRAWL["page_budget"]
    # passages at least this long count as relevant even without shared terms
    min_length_override: Optional[int] = None

    def is_sufficient(self, relevant: Sequence[PassageChunk]) -> bool:
        return len(relevant) >= self.min_relevant


@dataclass
class ChatResult:
    answer_text: str
    source_documents: List[PassageChunk] = field(default_factory=list)
    used_fallback: bool = False
    context_text: str = ""


class IndexSearch(Protocol):
    def search(self, query: str) -> List[PassageChunk]: ...


class WebFallback(Protocol):
    async def collect(self, seed_urls: Sequence[str], page_budget: int) -> List[PassageChunk]: ...


def sanitize_question(question: str) -> str:
    return question.strip().replace("\n", " ")


class KnowledgeOrchestrator:
    def __init__(
        self,
        retriever: IndexSearch,
        website: WebFallback,
        scorer: RelevanceScorer,
        composer: PromptComposer,
        policy: Optional[FallbackPolicy] = None,
        max_source_documents: int = RETRIEVAL["max_source_documents"],
    ):
        self.retriever = retriever
        self.website = website
        self.scorer = scorer
        self.composer = composer
        self.policy = policy or FallbackPolicy()
        self.max_source_documents = max_source_documents

    async def run(self, question: str, history: Optional[Sequence[ConversationTurn]] = None) -> ChatResult:
        question = sanitize_question(question)
        history = list(history or [])

        state = ChatState.QUERY_INDEX
        index_results: List[PassageChunk] = []
        relevant: List[PassageChunk] = []
        used_fallback = False
        answer = ""
        context = ""

        while state is not ChatState.DONE:
            print(f"[Orchestrator] -> {state.value}", flush=True)
            try:
                if state is ChatState.QUERY_INDEX:
                    index_results = await asyncio.to_thread(self.retriever.search, question)
                    state = ChatState.SCORE_INDEX_RESULTS

                elif state is ChatState.SCORE_INDEX_RESULTS:
                    relevant = self._relevant(question, index_results)
                    print(f"[Orchestrator] Index: {len(relevant)}/{len(index_results)} passages relevant", flush=True)
                    if self.policy.is_sufficient(relevant) or not self.policy.crawl_enabled:
                        state = ChatState.COMPOSE_ANSWER
                    else:
                        state = ChatState.FALLBACK_CRAWL

                elif state is ChatState.FALLBACK_CRAWL:
                    used_fallback = True
                    web_chunks = await self.website.collect(
                        list(self.policy.seed_urls), self.policy.page_budget
                    )
                    relevant = self._relevant(question, web_chunks)
                    print(f"[Orchestrator] Web: {len(relevant)}/{len(web_chunks)} passages relevant", flush=True)
                    state = ChatState.COMPOSE_ANSWER

                elif state is ChatState.COMPOSE_ANSWER:
                    # empty context means the model answers from general knowledge
                    context = combine_documents(relevant) if relevant else ""
                    answer = await asyncio.to_thread(self.composer.answer, question, context, history)
                    state = ChatState.DONE

            except SiteChatError:
                raise
            except Exception as e:
                print(f"[Orchestrator] {state.value} failed: {type(e).__name__}: {e}", flush=True)
                raise UpstreamServiceError(state.value, f"{type(e).__name__}: {e}") from e

        return ChatResult(
            answer_text=answer,
            source_documents=relevant[: self.max_source_documents],
            used_fallback=used_fallback,
            context_text=context,
        )

    def _relevant(self, question: str, passages: List[PassageChunk]) -> List[PassageChunk]:
        return self.scorer.filter(
            question,
            passages,
            min_score=self.policy.min_score,
            min_length_override=self.policy.min_length_override,
        )
