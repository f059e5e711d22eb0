from sitechat.core.embedder import Embedder
from sitechat.core.vector_store import VectorStore
from sitechat.core.llm import LLMWrapper
from sitechat.core.retriever import Retriever
from sitechat.core.scorer import RelevanceScorer
from sitechat.core.composer import PromptComposer
from sitechat.core.orchestrator import KnowledgeOrchestrator, FallbackPolicy

__all__ = [
    "Embedder",
    "VectorStore",
    "LLMWrapper",
    "Retriever",
    "RelevanceScorer",
    "PromptComposer",
    "KnowledgeOrchestrator",
    "FallbackPolicy",
]
