import os
import threading
import time
from typing import List, Optional

import httpx
import tiktoken

from sitechat.config import EMBEDDING, Settings
from sitechat.core.retry import RetryPolicy
from sitechat.errors import UpstreamServiceError


class Embedder:
    def __init__(self, settings: Settings, retry: Optional[RetryPolicy] = None):
        self._api_key = settings.jina_api_key
        self._endpoint = settings.jina_endpoint
        self._http = httpx.Client(timeout=httpx.Timeout(60.0, connect=20.0))
        self.retry = retry or RetryPolicy(
            max_attempts=settings.retry_max_attempts,
            base_delay_s=settings.retry_base_delay_s,
        )
        self.model = EMBEDDING["model"]
        self.task_doc = EMBEDDING["task_doc"]
        self.task_query = EMBEDDING["task_query"]
        self.batch_size = EMBEDDING["batch_size"]
        self.dimensions = EMBEDDING["dimensions"]

        self._rpm_limit = int(os.getenv("JINA_EMBED_RPM", "100"))
        self._tpm_limit = int(os.getenv("JINA_EMBED_TPM", "100000"))
        self._window_seconds = 60
        self._window_start = time.time()
        self._window_requests = 0
        self._window_tokens = 0
        # requests embed concurrently from worker threads
        self._budget_lock = threading.Lock()

        self._tokenizer = tiktoken.get_encoding(os.getenv("EMBED_TOKENIZER", "cl100k_base"))

    def _estimate_tokens(self, texts: List[str]) -> int:
        total = 0
        for t in texts:
            if not t:
                continue
            total += len(self._tokenizer.encode(t))
        return max(1, total)

    def _wait_for_budget(self, requests_cost: int, tokens_cost: int):
        now = time.time()
        if now - self._window_start >= self._window_seconds:
            self._window_start = now
            self._window_requests = 0
            self._window_tokens = 0

        exceeds_rpm = (self._window_requests + requests_cost) > self._rpm_limit
        exceeds_tpm = (self._window_tokens + tokens_cost) > self._tpm_limit
        if not (exceeds_rpm or exceeds_tpm):
            return

        reason = "RPM" if exceeds_rpm else "TPM"
        sleep_for = (self._window_start + self._window_seconds) - now
        if sleep_for > 0:
            print(f"[Embedder] Rate limit budget reached ({reason}). Sleeping {sleep_for:.2f}s...", flush=True)
            time.sleep(sleep_for + 0.05)

        self._window_start = time.time()
        self._window_requests = 0
        self._window_tokens = 0

    def _post(self, payload: dict) -> dict:
        resp = self._http.post(
            self._endpoint,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
        )
        resp.raise_for_status()
        return resp.json()

    def _embed_batch(self, batch: List[str], task: str) -> List[List[float]]:
        payload = {
            "model": self.model,
            "input": batch,
            "task": task,
            "dimensions": self.dimensions,
            "truncate": False,
            "embedding_type": "float",
        }
        estimated_tokens = self._estimate_tokens(batch)
        with self._budget_lock:
            self._wait_for_budget(requests_cost=1, tokens_cost=estimated_tokens)
            self._window_requests += 1
            self._window_tokens += estimated_tokens

        try:
            body = self.retry.call(lambda: self._post(payload), label="embeddings")
        except httpx.HTTPError as e:
            raise UpstreamServiceError("embeddings", str(e)) from e

        prompt_tokens = body.get("usage", {}).get("prompt_tokens")
        if isinstance(prompt_tokens, int) and prompt_tokens >= 0:
            with self._budget_lock:
                self._window_tokens += prompt_tokens - estimated_tokens

        embeddings: List[List[float]] = []
        for item in body.get("data", []):
            vec = item.get("embedding")
            if not isinstance(vec, list):
                raise UpstreamServiceError("embeddings", "unexpected response format")
            embeddings.append(vec)
        return embeddings

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        """Embed a list of documents in batches."""
        all_embeddings: List[List[float]] = []
        for i in range(0, len(texts), self.batch_size):
            batch = texts[i:i + self.batch_size]
            print(f"[Embedder] Batch {i // self.batch_size + 1}: {len(batch)} chunks", flush=True)
            all_embeddings.extend(self._embed_batch(batch, task=self.task_doc))
        return all_embeddings

    def embed_query(self, query: str) -> List[float]:
        embeddings = self._embed_batch([query], task=self.task_query)
        if not embeddings:
            raise UpstreamServiceError("embeddings", "no embedding returned for query")
        return embeddings[0]
