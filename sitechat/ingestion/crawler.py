"""
Site Crawler
============
Breadth-first, same-origin link discovery bounded by a page budget.

The traversal state lives in an explicit ``CrawlFrontier`` (visited set + FIFO
queue) so the budget check and cycle avoidance happen in one place. URLs are
normalized under a single ``UrlPolicy`` per run; mixing policies would let the
same page in twice under different spellings.
"""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Optional, Protocol, Set
from urllib.parse import urljoin, urlparse, urlunparse

from sitechat.config import CRAWL
from sitechat.errors import CrawlPageError, InvalidConfiguration
from sitechat.ingestion.extractor import RenderedPage, extract_links

SKIP_EXTENSIONS = {
    ".pdf", ".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp",
    ".mp4", ".mp3", ".wav", ".zip", ".tar", ".gz", ".exe", ".dmg",
    ".css", ".js", ".mjs", ".woff", ".woff2", ".ttf", ".otf", ".ico",
    ".xml", ".json", ".yaml", ".yml",
}

_DEFAULT_PORTS = {"http": "80", "https": "443"}


@dataclass(frozen=True)
class UrlPolicy:
    keep_query: bool = CRAWL["keep_query"]
    strip_trailing_slash: bool = CRAWL["strip_trailing_slash"]


def normalize_url(href: str, base: Optional[str] = None, policy: UrlPolicy = UrlPolicy()) -> Optional[str]:
    """Absolute, canonical form of ``href`` or None if it is not a crawlable page."""
    href = (href or "").strip()
    if not href:
        return None
    try:
        absolute = urljoin(base, href) if base else href
        parsed = urlparse(absolute)
    except ValueError:
        return None

    scheme = parsed.scheme.lower()
    if scheme not in ("http", "https") or not parsed.hostname:
        return None

    host = parsed.hostname.lower()
    try:
        port = parsed.port
    except ValueError:
        return None
    netloc = host
    if port is not None and str(port) != _DEFAULT_PORTS[scheme]:
        netloc = f"{host}:{port}"

    path = parsed.path or "/"
    if any(path.lower().endswith(ext) for ext in SKIP_EXTENSIONS):
        return None
    if policy.strip_trailing_slash and path != "/":
        path = path.rstrip("/") or "/"

    query = parsed.query if policy.keep_query else ""
    return urlunparse((scheme, netloc, path, "", query, ""))


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


@dataclass
class CrawlFrontier:
    origin: str
    budget: int
    visited: Set[str] = field(default_factory=set)
    queue: Deque[str] = field(default_factory=deque)
    _queued: Set[str] = field(default_factory=set, repr=False)

    def offer(self, url: str) -> bool:
        """Enqueue a normalized URL if it is same-origin and not seen before."""
        if origin_of(url) != self.origin:
            return False
        if url in self.visited or url in self._queued:
            return False
        self.queue.append(url)
        self._queued.add(url)
        return True

    @property
    def exhausted(self) -> bool:
        return not self.queue or len(self.visited) >= self.budget

    def claim(self) -> Optional[str]:
        # No awaits in here: under asyncio the check-and-insert is atomic.
        while self.queue and len(self.visited) < self.budget:
            url = self.queue.popleft()
            self._queued.discard(url)
            if url in self.visited:
                continue
            self.visited.add(url)
            return url
        return None

    def claim_batch(self, size: int) -> List[str]:
        batch = []
        while len(batch) < size:
            url = self.claim()
            if url is None:
                break
            batch.append(url)
        return batch


class PageRenderer(Protocol):
    async def render(self, url: str) -> RenderedPage: ...


class SiteCrawler:
    def __init__(
        self,
        renderer: PageRenderer,
        policy: Optional[UrlPolicy] = None,
        concurrency: int = CRAWL["concurrency"],
    ):
        self.renderer = renderer
        self.policy = policy or UrlPolicy()
        self.concurrency = max(1, concurrency)

    async def crawl(
        self,
        seed_url: str,
        page_budget: int = CRAWL["page_budget"],
        on_page: Optional[Callable[[RenderedPage], None]] = None,
    ) -> Set[str]:
        """Visit up to ``page_budget`` same-origin pages reachable from ``seed_url``.

        ``on_page`` receives every successfully rendered page, so callers can
        extract content without rendering it a second time. It is called from
        a worker thread, one page at a time.
        """
        seed = normalize_url(seed_url, policy=self.policy)
        if seed is None:
            raise InvalidConfiguration(f"Seed URL must be an http(s) page: {seed_url!r}")

        frontier = CrawlFrontier(origin=origin_of(seed), budget=max(0, page_budget))
        frontier.offer(seed)
        print(f"[Crawler] Starting crawl: {seed} | budget={page_budget} | concurrency={self.concurrency}", flush=True)

        failed = 0
        while True:
            batch = frontier.claim_batch(self.concurrency)
            if not batch:
                break
            pages = await asyncio.gather(*(self._fetch(url) for url in batch))
            for page in pages:
                if page is None:
                    failed += 1
                    continue
                # HTML parsing is CPU-bound; keep it off the event loop
                links = await asyncio.to_thread(self._digest, page, on_page)
                added = 0
                for href in links:
                    # resolve against where the page actually lives, not the seed
                    url = normalize_url(href, page.final_url, self.policy)
                    if url and frontier.offer(url):
                        added += 1
                print(f"[Crawler] ✓ {page.url} (+{added} queued, {len(frontier.visited)}/{frontier.budget} visited)", flush=True)

        print(f"[Crawler] Done: {len(frontier.visited)} visited, {failed} failed, {len(frontier.queue)} left in queue", flush=True)
        return set(frontier.visited)

    async def _fetch(self, url: str) -> Optional[RenderedPage]:
        try:
            return await self.renderer.render(url)
        except CrawlPageError as e:
            print(f"[Crawler] ✗ FAILED : {url}", flush=True)
            print(f"[Crawler]   Reason  : {e.reason}", flush=True)
            return None

    @staticmethod
    def _digest(page: RenderedPage, on_page: Optional[Callable[[RenderedPage], None]]) -> List[str]:
        """Pull the page's links, then hand the page to ``on_page``. Runs in a worker thread."""
        links = extract_links(page.html)
        if on_page is not None:
            try:
                on_page(page)
            except Exception as e:
                print(f"[Crawler] ✗ PARSE  : {page.url} ({type(e).__name__}: {e})", flush=True)
        return links
