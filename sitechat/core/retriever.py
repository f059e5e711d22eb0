from typing import List

from sitechat.core.embedder import Embedder
from sitechat.core.vector_store import VectorStore
from sitechat.ingestion.base import PassageChunk


class Retriever:
    def __init__(self, embedder: Embedder, vector_store: VectorStore, top_k: int):
        self.embedder = embedder
        self.vector_store = vector_store
        self.top_k = top_k

    def search(self, query: str) -> List[PassageChunk]:
        """Embed the query and return the nearest indexed passages."""
        query_embedding = self.embedder.embed_query(query)
        results = self.vector_store.search(query_embedding, top_k=self.top_k)

        print(f"[Retriever] Vector search found {len(results)} results", flush=True)
        for r in results[:5]:
            print(f"  - source: {r.source_uri}, text: {r.content[:60]}...", flush=True)
        return results
