"""Offline ingestion: chunk every PDF in the documents directory into the vector index."""

import argparse
import glob
import os
import sys
from typing import List, Optional

from sitechat.config import Settings
from sitechat.core.embedder import Embedder
from sitechat.core.vector_store import VectorStore
from sitechat.errors import SiteChatError
from sitechat.ingestion.base import PassageChunk
from sitechat.ingestion.pdf import PDFIngester


def find_documents(documents_dir: str) -> List[str]:
    return sorted(glob.glob(os.path.join(documents_dir, "**", "*.pdf"), recursive=True))


def ingest_directory(documents_dir: str, embedder: Embedder, vector_store: VectorStore) -> int:
    paths = find_documents(documents_dir)
    print(f"[Ingest] Loading raw documents from: {documents_dir} ({len(paths)} PDFs)", flush=True)

    ingester = PDFIngester()
    chunks: List[PassageChunk] = []
    for path in paths:
        chunks.extend(ingester.ingest(path))

    if not chunks:
        print("[Ingest] Nothing to ingest", flush=True)
        return 0

    embeddings = embedder.embed_documents([c.content for c in chunks])
    vector_store.ensure_collection()
    return vector_store.upsert(chunks, embeddings)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Ingest PDF documents into the SiteChat vector index")
    parser.add_argument("--dir", dest="documents_dir", help="documents directory (default: DOCUMENTS_DIR)")
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
        documents_dir = args.documents_dir or settings.documents_dir
        inserted = ingest_directory(documents_dir, Embedder(settings), VectorStore(settings))
    except SiteChatError as e:
        print(f"[Ingest] Failed to ingest your data: {e}", file=sys.stderr, flush=True)
        return 1

    print(f"[Ingest] Ingestion complete: {inserted} chunks", flush=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
