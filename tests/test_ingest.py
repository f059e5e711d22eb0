from unittest.mock import MagicMock

import fitz
import pytest

from sitechat.ingest import find_documents, ingest_directory
from sitechat.ingestion.base import SourceKind
from sitechat.ingestion.pdf import PDFIngester

LINES = [f"Line {i}: the foundation publishes its annual report here." for i in range(12)]


def _write_pdf(path, lines):
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "\n".join(lines), fontsize=10)
    doc.save(str(path))
    doc.close()


@pytest.fixture
def docs_dir(tmp_path):
    nested = tmp_path / "reports"
    nested.mkdir()
    _write_pdf(tmp_path / "annual.pdf", LINES)
    _write_pdf(nested / "summary.pdf", LINES[:6])
    (tmp_path / "notes.txt").write_text("not a pdf")
    return tmp_path


def test_find_documents_is_recursive(docs_dir):
    names = [p.replace(str(docs_dir), "") for p in find_documents(str(docs_dir))]
    assert names == ["/annual.pdf", "/reports/summary.pdf"]


def test_pdf_ingester_chunks_document_text(docs_dir):
    path = str(docs_dir / "annual.pdf")
    chunks = PDFIngester().ingest(path)
    assert len(chunks) == 1
    assert chunks[0].source_uri == path
    assert chunks[0].source_kind is SourceKind.DOCUMENT
    assert chunks[0].content.startswith("Line 0: the foundation")
    assert "\n" not in chunks[0].content


def test_ingest_directory_embeds_and_upserts(docs_dir):
    embedder = MagicMock()
    embedder.embed_documents.side_effect = lambda texts: [[0.1] for _ in texts]
    store = MagicMock()
    store.upsert.side_effect = lambda chunks, embeddings: len(chunks)

    assert ingest_directory(str(docs_dir), embedder, store) == 2
    store.ensure_collection.assert_called_once()


def test_ingest_empty_directory(tmp_path):
    embedder = MagicMock()
    store = MagicMock()
    assert ingest_directory(str(tmp_path), embedder, store) == 0
    embedder.embed_documents.assert_not_called()
