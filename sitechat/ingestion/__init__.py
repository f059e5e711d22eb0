from sitechat.ingestion.base import BaseIngester, PassageChunk, SourceKind
from sitechat.ingestion.chunker import chunk_text
from sitechat.ingestion.crawler import SiteCrawler, UrlPolicy, normalize_url
from sitechat.ingestion.extractor import PageExtractor
from sitechat.ingestion.pdf import PDFIngester
from sitechat.ingestion.website import WebsiteIngester

__all__ = [
    "BaseIngester",
    "PassageChunk",
    "SourceKind",
    "chunk_text",
    "SiteCrawler",
    "UrlPolicy",
    "normalize_url",
    "PageExtractor",
    "PDFIngester",
    "WebsiteIngester",
]
