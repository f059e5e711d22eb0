import os
from typing import List

import fitz  # PyMuPDF

from sitechat.config import CHUNKING
from sitechat.ingestion.base import BaseIngester, PassageChunk, SourceKind
from sitechat.ingestion.chunker import chunk_text


class PDFIngester(BaseIngester):
    def __init__(self):
        self.chunk_size = CHUNKING["document"]["size"]
        self.overlap = CHUNKING["document"]["overlap"]
        self.min_chars = CHUNKING["min_chars"]

    def extract_text(self, source_path: str) -> str:
        pages = []
        with fitz.open(source_path) as doc:
            for page in doc:
                text = page.get_text()
                # Skip pages with minimal content (blank / scanned without OCR)
                if len(text.strip()) < 30:
                    continue
                pages.append(text)
        return "\n".join(pages)

    def ingest(self, source_path: str) -> List[PassageChunk]:
        """Chunk a PDF's text with the same windowing used for web pages."""
        text = self.extract_text(source_path)
        chunks = list(chunk_text(
            text,
            self.chunk_size,
            self.overlap,
            source_uri=source_path,
            source_kind=SourceKind.DOCUMENT,
            min_chars=self.min_chars,
        ))
        print(f"[Ingest] {os.path.basename(source_path)}: {len(text)} chars -> {len(chunks)} chunks", flush=True)
        return chunks
