"""
Website fallback ingester
=========================
Turns a set of seed sites into ``web`` PassageChunks at query time.

Strategy per seed:
1. Open one headless browser (PageExtractor) for the whole run
2. Crawl breadth-first within the seed's origin, up to the page budget
3. Extract each rendered page's main text and cut it into overlapping windows
4. Drop chunks repeated across pages (shared headers/footers)

Results per seed can be cached in Upstash Redis for a TTL, since a crawl takes
seconds to minutes.
"""

import hashlib
from typing import Callable, List, Optional, Sequence, Set

from sitechat.config import CHUNKING, CRAWL
from sitechat.core.cache import cache_get_or_set, make_cache_key
from sitechat.core.upstash_redis import UpstashRedis
from sitechat.ingestion.base import PassageChunk, SourceKind
from sitechat.ingestion.chunker import chunk_text
from sitechat.ingestion.crawler import SiteCrawler, UrlPolicy
from sitechat.ingestion.extractor import PageExtractor, RenderedPage


class WebsiteIngester:
    def __init__(
        self,
        extractor_factory: Callable[[], PageExtractor] = PageExtractor,
        policy: Optional[UrlPolicy] = None,
        concurrency: int = CRAWL["concurrency"],
        redis: Optional[UpstashRedis] = None,
        cache_ttl_seconds: int = CRAWL["cache_ttl_seconds"],
    ):
        self.extractor_factory = extractor_factory
        self.policy = policy or UrlPolicy()
        self.concurrency = concurrency
        self.redis = redis or UpstashRedis()
        self.cache_ttl_seconds = cache_ttl_seconds
        cfg = CHUNKING["web"]
        self.chunk_size = cfg["size"]
        self.overlap = cfg["overlap"]
        self.min_chars = CHUNKING["min_chars"]

    async def collect(
        self, seed_urls: Sequence[str], page_budget: int = CRAWL["page_budget"]
    ) -> List[PassageChunk]:
        all_chunks: List[PassageChunk] = []
        for seed in seed_urls:
            all_chunks.extend(await self._collect_seed(seed, page_budget))

        before = len(all_chunks)
        all_chunks = self._deduplicate_chunks(all_chunks)
        print(f"[Website] Collected {len(all_chunks)} chunks from {len(seed_urls)} seed(s) (before dedup: {before})", flush=True)
        return all_chunks

    async def _collect_seed(self, seed: str, page_budget: int) -> List[PassageChunk]:
        async def _fetch():
            chunks = await self.crawl_seed(seed, page_budget)
            return [c.to_dict() for c in chunks]

        raw = await cache_get_or_set(
            redis=self.redis,
            key=make_cache_key("crawl:chunks", f"{seed}|{page_budget}"),
            fetch=_fetch,
            ttl_seconds=self.cache_ttl_seconds,
            # an all-failed crawl yields nothing; retry it on the next request
            should_cache=bool,
        )
        return [PassageChunk.from_dict(item) for item in raw]

    async def crawl_seed(self, seed: str, page_budget: int) -> List[PassageChunk]:
        collected: List[PassageChunk] = []

        async with self.extractor_factory() as extractor:

            def on_page(page: RenderedPage) -> None:
                text = extractor.main_text(page)
                chunks = list(chunk_text(
                    text,
                    self.chunk_size,
                    self.overlap,
                    source_uri=page.url,
                    source_kind=SourceKind.WEB,
                    min_chars=self.min_chars,
                ))
                print(f"[Website]   {page.url}: {len(text)} chars -> {len(chunks)} chunks", flush=True)
                collected.extend(chunks)

            crawler = SiteCrawler(extractor, policy=self.policy, concurrency=self.concurrency)
            visited = await crawler.crawl(seed, page_budget, on_page=on_page)

        print(f"[Website] {seed}: {len(visited)} pages visited, {len(collected)} chunks", flush=True)
        return collected

    def _deduplicate_chunks(self, chunks: List[PassageChunk]) -> List[PassageChunk]:
        """Remove chunks whose opening text repeats (shared headers/nav across pages)."""
        seen_hashes: Set[str] = set()
        unique: List[PassageChunk] = []
        for chunk in chunks:
            fingerprint = hashlib.md5(chunk.content[:300].encode("utf-8")).hexdigest()
            if fingerprint not in seen_hashes:
                seen_hashes.add(fingerprint)
                unique.append(chunk)
        removed = len(chunks) - len(unique)
        if removed:
            print(f"[Website] Deduplication removed {removed} duplicate chunks", flush=True)
        return unique
