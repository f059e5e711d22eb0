"""
Page Content Extractor
======================
Renders pages in headless Chromium (Crawl4AI) and pulls out the primary text.

One ``PageExtractor`` owns exactly one browser for its lifetime:

    async with PageExtractor() as extractor:
        text = await extractor.extract_text("https://example.com/about")

Each ``render`` call navigates in its own browser page (opened and closed by
Crawl4AI), waits for network idle within a bounded timeout, and returns the
final HTML. Any failure for that page is raised as ``CrawlPageError`` so the
caller can skip the page without abandoning the run.
"""

import asyncio
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup
from crawl4ai import AsyncWebCrawler, BrowserConfig, CacheMode, CrawlerRunConfig

from sitechat.config import EXTRACTION
from sitechat.errors import CrawlPageError

_WHITESPACE = re.compile(r"\s+")
_STRIP_TAGS = ["script", "style", "noscript", "template"]


@dataclass(frozen=True)
class RenderedPage:
    url: str          # the URL we asked for
    final_url: str    # where the browser ended up after redirects
    html: str


def _soup(html: str) -> BeautifulSoup:
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(_STRIP_TAGS):
        tag.decompose()
    return soup


def _text_of(node) -> str:
    if node is None:
        return ""
    return _WHITESPACE.sub(" ", node.get_text(" ")).strip()


def extract_main_text(
    html: str,
    selectors: Sequence[str] = tuple(EXTRACTION["selectors"]),
    min_chars: int = EXTRACTION["min_content_chars"],
) -> str:
    """Text of the first content region longer than ``min_chars``, else the whole body."""
    soup = _soup(html)
    for selector in selectors:
        try:
            node = soup.select_one(selector)
        except Exception:
            # unsupported selector syntax
            continue
        text = _text_of(node)
        if len(text) > min_chars:
            return text
    return _text_of(soup.body or soup)


def extract_links(html: str) -> List[str]:
    """Raw href values of every anchor, in document order."""
    soup = BeautifulSoup(html or "", "html.parser")
    links = []
    for a in soup.select("a[href]"):
        href = (a.get("href") or "").strip()
        if href:
            links.append(href)
    return links


class PageExtractor:
    def __init__(
        self,
        navigation_timeout_ms: int = EXTRACTION["navigation_timeout_ms"],
        wait_until: str = EXTRACTION["wait_until"],
        selectors: Optional[Sequence[str]] = None,
        min_content_chars: int = EXTRACTION["min_content_chars"],
    ):
        self.navigation_timeout_ms = navigation_timeout_ms
        self.wait_until = wait_until
        self.selectors = list(selectors or EXTRACTION["selectors"])
        self.min_content_chars = min_content_chars
        self._crawler: Optional[AsyncWebCrawler] = None
        self._run_cfg = CrawlerRunConfig(
            cache_mode=CacheMode.BYPASS,
            wait_until=self.wait_until,
            page_timeout=self.navigation_timeout_ms,
            remove_overlay_elements=True,
            verbose=False,
        )

    async def __aenter__(self) -> "PageExtractor":
        browser_cfg = BrowserConfig(
            headless=True,
            verbose=False,
            extra_args=["--no-sandbox", "--disable-setuid-sandbox"],
        )
        crawler = AsyncWebCrawler(config=browser_cfg)
        await crawler.start()
        self._crawler = crawler
        print("[Extractor] Browser started", flush=True)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        crawler, self._crawler = self._crawler, None
        if crawler is not None:
            await crawler.close()
            print("[Extractor] Browser closed", flush=True)

    async def render(self, url: str) -> RenderedPage:
        if self._crawler is None:
            raise RuntimeError("PageExtractor must be used inside 'async with'")

        # crawl4ai enforces page_timeout on navigation; this bounds the whole call
        hard_timeout = self.navigation_timeout_ms / 1000.0 + 30.0
        try:
            result = await asyncio.wait_for(
                self._crawler.arun(url=url, config=self._run_cfg),
                timeout=hard_timeout,
            )
        except asyncio.TimeoutError:
            raise CrawlPageError(url, f"timed out after {hard_timeout:.0f}s")
        except Exception as e:
            raise CrawlPageError(url, f"{type(e).__name__}: {e}") from e

        if not result.success:
            raise CrawlPageError(url, result.error_message or "render failed")

        html = result.html or ""
        final_url = getattr(result, "redirected_url", None) or result.url or url
        return RenderedPage(url=url, final_url=final_url, html=html)

    def main_text(self, page: RenderedPage) -> str:
        return extract_main_text(page.html, self.selectors, self.min_content_chars)

    async def extract_text(self, url: str) -> str:
        page = await self.render(url)
        return self.main_text(page)
