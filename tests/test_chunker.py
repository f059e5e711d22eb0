import pytest

from sitechat.errors import InvalidConfiguration
from sitechat.ingestion.base import SourceKind
from sitechat.ingestion.chunker import chunk_text, normalize_whitespace

WORDS = "alpha beta gamma delta epsilon zeta eta theta iota kappa lambda mu "


def test_short_text_produces_no_chunks():
    text = "x" * 50
    assert list(chunk_text(text, 1000, 200)) == []


def test_window_offsets_follow_step():
    text = "a" * 2500
    chunks = list(chunk_text(text, 1000, 200))
    # the window at 2400 is only 100 chars and is dropped
    assert [c.chunk_index for c in chunks] == [0, 800, 1600]
    assert [len(c.content) for c in chunks] == [1000, 1000, 900]


@pytest.mark.parametrize("size,overlap", [(1000, 200), (300, 0), (250, 249), (500, 100)])
def test_offsets_increase_and_cover_text(size, overlap):
    text = normalize_whitespace(WORDS * 80)
    chunks = list(chunk_text(text, size, overlap))
    assert chunks
    assert chunks[0].chunk_index == 0
    for prev, cur in zip(chunks, chunks[1:]):
        assert cur.chunk_index > prev.chunk_index
        # no gap between consecutive retained windows
        assert cur.chunk_index <= prev.chunk_index + len(prev.content)
    for c in chunks:
        assert c.content == text[c.chunk_index:c.chunk_index + size]


def test_whitespace_is_collapsed_before_chunking():
    text = "  first\n\n\tsecond   third  " + "word " * 60
    chunks = list(chunk_text(text, 1000, 200))
    assert len(chunks) == 1
    assert chunks[0].content.startswith("first second third word")
    assert "  " not in chunks[0].content
    assert not chunks[0].content.endswith(" ")


def test_chunks_carry_source_metadata():
    chunks = list(chunk_text("y" * 400, 200, 50, source_uri="https://example.com/a", source_kind=SourceKind.WEB))
    assert all(c.source_uri == "https://example.com/a" for c in chunks)
    assert all(c.source_kind is SourceKind.WEB for c in chunks)


def test_min_chars_threshold_is_strict():
    assert list(chunk_text("z" * 100, 1000, 0)) == []
    assert len(list(chunk_text("z" * 101, 1000, 0))) == 1
    assert len(list(chunk_text("z" * 40, 1000, 0, min_chars=10))) == 1


@pytest.mark.parametrize("size,overlap", [(100, 100), (100, 150), (0, 0), (100, -1)])
def test_invalid_window_configuration(size, overlap):
    with pytest.raises(InvalidConfiguration):
        chunk_text("text", size, overlap)


def test_sequence_is_restartable():
    seq = chunk_text("q" * 3000, 1000, 200)
    first = list(seq)
    second = list(seq)
    assert first == second
    assert len(first) > 1
