import pytest

from sitechat.core.orchestrator import FallbackPolicy, KnowledgeOrchestrator, sanitize_question
from sitechat.core.scorer import RelevanceScorer
from sitechat.errors import UpstreamServiceError
from sitechat.ingestion.base import SourceKind
from tests.helpers import make_passage


class StubRetriever:
    def __init__(self, results=None, error=None):
        self.results = results or []
        self.error = error
        self.queries = []

    def search(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return list(self.results)


class StubWebsite:
    def __init__(self, chunks=None):
        self.chunks = chunks or []
        self.calls = []

    async def collect(self, seed_urls, page_budget):
        self.calls.append((list(seed_urls), page_budget))
        return list(self.chunks)


class StubComposer:
    def __init__(self):
        self.calls = []

    def answer(self, question, context, history=None):
        self.calls.append((question, context, history))
        return f"answer to {question}"


def _orchestrator(retriever, website, policy=None, **kwargs):
    return KnowledgeOrchestrator(
        retriever=retriever,
        website=website,
        scorer=RelevanceScorer(),
        composer=StubComposer(),
        policy=policy or FallbackPolicy(seed_urls=("https://example.com/",), page_budget=7),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_empty_index_triggers_site_fallback():
    web = [make_passage("Our volunteers teach reading", "https://example.com/teach", kind=SourceKind.WEB)]
    website = StubWebsite(web)
    orch = _orchestrator(StubRetriever([]), website)

    result = await orch.run("Which volunteers teach reading")

    assert website.calls == [(["https://example.com/"], 7)]
    assert result.used_fallback
    assert result.context_text == "Our volunteers teach reading"
    assert [d.source_uri for d in result.source_documents] == ["https://example.com/teach"]


@pytest.mark.asyncio
async def test_relevant_index_result_skips_crawl():
    website = StubWebsite()
    passage = make_passage("Our services for X include tutoring and meals.")
    orch = _orchestrator(StubRetriever([passage]), website)

    result = await orch.run("What services does X offer?")

    assert website.calls == []
    assert not result.used_fallback
    assert result.context_text == passage.content
    assert orch.composer.calls[0][1] == passage.content
    assert result.source_documents == [passage]
    assert result.answer_text == "answer to What services does X offer?"


@pytest.mark.asyncio
async def test_irrelevant_index_results_trigger_fallback():
    website = StubWebsite()
    orch = _orchestrator(StubRetriever([make_passage("completely unrelated words")]), website)

    result = await orch.run("donation receipts")

    assert len(website.calls) == 1
    assert result.used_fallback
    # nothing relevant anywhere: empty context, answer from general knowledge
    assert result.context_text == ""
    assert result.source_documents == []
    assert result.answer_text


@pytest.mark.asyncio
async def test_source_documents_capped_at_five():
    passages = [make_passage(f"meals programme part {i}", index=i) for i in range(8)]
    orch = _orchestrator(StubRetriever(passages), StubWebsite())

    result = await orch.run("meals programme")

    assert [d.chunk_index for d in result.source_documents] == [0, 1, 2, 3, 4]
    # the context still holds every relevant passage
    assert result.context_text.count("meals programme") == 8


@pytest.mark.asyncio
async def test_crawl_disabled_answers_without_fallback():
    website = StubWebsite()
    policy = FallbackPolicy(crawl_enabled=False)
    orch = _orchestrator(StubRetriever([]), website, policy=policy)

    result = await orch.run("anything at all")

    assert website.calls == []
    assert not result.used_fallback
    assert result.context_text == ""


@pytest.mark.asyncio
async def test_min_relevant_threshold():
    website = StubWebsite()
    policy = FallbackPolicy(min_relevant=2, seed_urls=("https://example.com/",))
    orch = _orchestrator(StubRetriever([make_passage("library hours")]), website, policy=policy)

    await orch.run("library hours")

    assert len(website.calls) == 1


@pytest.mark.asyncio
async def test_question_is_sanitized_before_retrieval():
    retriever = StubRetriever([make_passage("opening hours are nine to five")])
    orch = _orchestrator(retriever, StubWebsite())

    await orch.run("  opening\nhours  ", [("hi", "hello")])

    assert retriever.queries == ["opening hours"]
    assert orch.composer.calls[0][0] == "opening hours"
    assert orch.composer.calls[0][2] == [("hi", "hello")]


@pytest.mark.asyncio
async def test_unexpected_failure_is_wrapped():
    orch = _orchestrator(StubRetriever(error=ConnectionError("index down")), StubWebsite())

    with pytest.raises(UpstreamServiceError) as excinfo:
        await orch.run("anything")
    assert excinfo.value.service == "query_index"


@pytest.mark.asyncio
async def test_domain_errors_pass_through_unchanged():
    error = UpstreamServiceError("embeddings", "quota exceeded")
    orch = _orchestrator(StubRetriever(error=error), StubWebsite())

    with pytest.raises(UpstreamServiceError) as excinfo:
        await orch.run("anything")
    assert excinfo.value is error


def test_sanitize_question():
    assert sanitize_question("  a\nb \n") == "a b"


@pytest.mark.asyncio
async def test_long_passages_count_when_override_is_set():
    website = StubWebsite()
    passage = make_passage("General overview of the organisation and its history. " * 10)
    policy = FallbackPolicy(min_length_override=400, seed_urls=("https://example.com/",))
    orch = _orchestrator(StubRetriever([passage]), website, policy=policy)

    result = await orch.run("donation receipts")

    assert website.calls == []
    assert result.source_documents == [passage]
