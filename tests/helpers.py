from sitechat.ingestion.base import PassageChunk, SourceKind


def make_passage(content, source="docs/guide.pdf", index=0, kind=SourceKind.DOCUMENT):
    return PassageChunk(content=content, source_uri=source, chunk_index=index, source_kind=kind)
