from typing import Any, Dict, List, Optional

from pymilvus import MilvusClient
from pymilvus.exceptions import MilvusException

from sitechat.config import VECTOR_DB, Settings
from sitechat.core.retry import RetryPolicy
from sitechat.errors import UpstreamServiceError
from sitechat.ingestion.base import PassageChunk, SourceKind

_OUTPUT_FIELDS = ["text", "source", "source_kind", "chunk_index"]


def _is_milvus_error(exc: BaseException) -> bool:
    return isinstance(exc, MilvusException)


class VectorStore:
    """One Milvus collection (the index) and one partition (the namespace)."""

    def __init__(self, settings: Settings, client: Optional[MilvusClient] = None, retry: Optional[RetryPolicy] = None):
        self.collection = settings.index_name
        self.namespace = settings.namespace
        self.dimensions = VECTOR_DB["dimensions"]
        self.retry = retry or RetryPolicy(
            max_attempts=settings.retry_max_attempts,
            base_delay_s=settings.retry_base_delay_s,
        )
        self.client = client or MilvusClient(uri=settings.zilliz_uri, token=settings.zilliz_token or "")

    def _call(self, label: str, fn):
        try:
            return self.retry.call(fn, label=f"milvus.{label}", retry_if=_is_milvus_error)
        except MilvusException as e:
            raise UpstreamServiceError("vector index", f"{label} failed: {e}") from e

    def ensure_collection(self) -> None:
        """Create the collection and namespace partition if they don't exist."""
        def _ensure():
            if not self.client.has_collection(self.collection):
                self.client.create_collection(
                    collection_name=self.collection,
                    dimension=self.dimensions,
                    metric_type="COSINE",
                    id_type="str",
                    auto_id=True,
                    max_length=65535,
                )
            if not self.client.has_partition(self.collection, self.namespace):
                self.client.create_partition(self.collection, self.namespace)
            self.client.load_collection(self.collection)
        self._call("ensure_collection", _ensure)

    def upsert(self, chunks: List[PassageChunk], embeddings: List[List[float]]) -> int:
        """Insert chunks with embeddings into the namespace partition."""
        data = []
        skipped = 0
        for chunk, embedding in zip(chunks, embeddings):
            if not chunk.content.strip() or len(embedding) != self.dimensions:
                skipped += 1
                continue
            data.append({
                "vector": embedding,
                "text": chunk.content[:32000],        # Milvus varchar cap
                "source": chunk.source_uri[:512],
                "source_kind": chunk.source_kind.value,
                "chunk_index": chunk.chunk_index,
            })

        if skipped:
            print(f"[VectorStore] upsert: skipped {skipped} invalid chunks out of {len(chunks)}", flush=True)
        if not data:
            return 0

        def _insert():
            self.client.insert(collection_name=self.collection, data=data, partition_name=self.namespace)
            self.client.flush(collection_name=self.collection)
        self._call("insert", _insert)
        print(f"[VectorStore] upsert: inserted {len(data)} chunks into {self.collection}/{self.namespace}", flush=True)
        return len(data)

    def search(self, query_embedding: List[float], top_k: int) -> List[PassageChunk]:
        """Nearest-neighbour search, best match first."""
        if len(query_embedding) != self.dimensions:
            print(f"[VectorStore] Query embedding dim mismatch: got={len(query_embedding)}, expected={self.dimensions}", flush=True)

        results = self._call("search", lambda: self.client.search(
            collection_name=self.collection,
            data=[query_embedding],
            limit=top_k,
            partition_names=[self.namespace],
            anns_field="vector",
            search_params={"metric_type": "COSINE"},
            output_fields=_OUTPUT_FIELDS,
        ))

        hits = results[0] if results else []
        print(f"[VectorStore] Search on {self.collection}/{self.namespace} returned {len(hits)} hits", flush=True)
        return [self._to_chunk(hit) for hit in hits]

    @staticmethod
    def _to_chunk(hit: Dict[str, Any]) -> PassageChunk:
        # hits expose fields via hit["entity"] or directly on the hit dict
        entity = hit.get("entity") if isinstance(hit.get("entity"), dict) else hit
        try:
            kind = SourceKind(entity.get("source_kind") or SourceKind.DOCUMENT.value)
        except ValueError:
            kind = SourceKind.DOCUMENT
        return PassageChunk(
            content=entity.get("text", "") or "",
            source_uri=entity.get("source", "") or "",
            chunk_index=int(entity.get("chunk_index", 0) or 0),
            source_kind=kind,
        )
