import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from sitechat.errors import ConfigurationError, InvalidConfiguration

EMBEDDING = {
    "model": "jina-embeddings-v5-text-small",
    "task_doc": "retrieval.passage",
    "task_query": "retrieval.query",
    "batch_size": 50,
    "dimensions": 1024
}

CHUNKING = {
    "document": {"size": 1000, "overlap": 200},
    "web":      {"size": 1000, "overlap": 200},
    # chunks must be strictly longer than this many characters
    "min_chars": 100,
}

RETRIEVAL = {
    "top_k_search": 4,
    "min_token_length": 1,
    "max_source_documents": 5,
}

FALLBACK = {
    "enabled": True,
    "min_score": 1,
    "min_relevant": 1,
    "seed_urls": ["https://radheshrinivasafoundation.com/"],
}

CRAWL = {
    "page_budget": 50,
    "concurrency": 1,
    "keep_query": False,
    "strip_trailing_slash": True,
    "cache_ttl_seconds": 3600,
}

EXTRACTION = {
    "navigation_timeout_ms": 60000,
    "wait_until": "networkidle",
    "min_content_chars": 200,
    "selectors": [
        "main",
        "article",
        "[role=main]",
        "#content",
        ".content",
        "#main",
        ".main-content",
    ],
}

VECTOR_DB = {
    "namespace": "my-docs",
    "distance": "cosine",
    "dimensions": 1024
}

LLM = {
    "max_tokens": 1024,
    "temperature": 0.1,
    "timeout_s": 60.0,
}

RETRY = {
    "max_attempts": 3,
    "base_delay_s": 1.0,
    "max_delay_s": 30.0,
}

SOURCES = {
    "documents_dir": "./docs",
    "max_file_size_mb": 50
}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _require(name: str) -> str:
    value = (os.getenv(name) or "").strip()
    if not value:
        raise ConfigurationError(f"Missing {name} in environment / .env file")
    return value


@dataclass
class Settings:
    """Runtime configuration, passed explicitly to every component."""

    index_name: str
    zilliz_uri: str
    jina_api_key: str
    llm_worker_url: str
    zilliz_token: Optional[str] = None
    namespace: str = VECTOR_DB["namespace"]
    jina_endpoint: str = "https://api.jina.ai/v1/embeddings"
    seed_urls: List[str] = field(default_factory=lambda: list(FALLBACK["seed_urls"]))
    fallback_enabled: bool = FALLBACK["enabled"]
    fallback_min_score: int = FALLBACK["min_score"]
    fallback_min_relevant: int = FALLBACK["min_relevant"]
    fallback_min_length_override: Optional[int] = None
    page_budget: int = CRAWL["page_budget"]
    crawl_concurrency: int = CRAWL["concurrency"]
    crawl_cache_ttl_seconds: int = CRAWL["cache_ttl_seconds"]
    min_token_length: int = RETRIEVAL["min_token_length"]
    top_k_search: int = RETRIEVAL["top_k_search"]
    retry_max_attempts: int = RETRY["max_attempts"]
    retry_base_delay_s: float = RETRY["base_delay_s"]
    documents_dir: str = SOURCES["documents_dir"]
    upstash_url: Optional[str] = None
    upstash_token: Optional[str] = None

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Build settings from the environment, failing fast on missing keys."""
        if dotenv:
            load_dotenv()
        settings = cls(
            index_name=_require("INDEX_NAME"),
            zilliz_uri=_require("ZILLIZ_URI"),
            jina_api_key=_require("JINA_API_KEY"),
            llm_worker_url=_require("CLOUDFLARE_WORKER_URL").rstrip("/"),
            zilliz_token=os.getenv("ZILLIZ_TOKEN") or None,
            namespace=os.getenv("INDEX_NAMESPACE", VECTOR_DB["namespace"]),
            jina_endpoint=os.getenv("JINA_EMBEDDINGS_URL", "https://api.jina.ai/v1/embeddings"),
            seed_urls=_env_list("FALLBACK_SEED_URLS", FALLBACK["seed_urls"]),
            fallback_enabled=_env_bool("FALLBACK_CRAWL_ENABLED", FALLBACK["enabled"]),
            fallback_min_score=_env_int("FALLBACK_MIN_SCORE", FALLBACK["min_score"]),
            fallback_min_relevant=_env_int("FALLBACK_MIN_RELEVANT", FALLBACK["min_relevant"]),
            fallback_min_length_override=_env_int("FALLBACK_MIN_LENGTH_OVERRIDE", 0) or None,
            page_budget=_env_int("CRAWL_PAGE_BUDGET", CRAWL["page_budget"]),
            crawl_concurrency=max(1, _env_int("CRAWL_CONCURRENCY", CRAWL["concurrency"])),
            crawl_cache_ttl_seconds=_env_int("CRAWL_CACHE_TTL_SECONDS", CRAWL["cache_ttl_seconds"]),
            min_token_length=_env_int("SCORER_MIN_TOKEN_LENGTH", RETRIEVAL["min_token_length"]),
            top_k_search=_env_int("INDEX_TOP_K", RETRIEVAL["top_k_search"]),
            retry_max_attempts=max(1, _env_int("RETRY_MAX_ATTEMPTS", RETRY["max_attempts"])),
            retry_base_delay_s=_env_float("RETRY_BASE_DELAY", RETRY["base_delay_s"]),
            documents_dir=os.getenv("DOCUMENTS_DIR", SOURCES["documents_dir"]),
            upstash_url=os.getenv("UPSTASH_REDIS_REST_URL") or None,
            upstash_token=os.getenv("UPSTASH_REDIS_REST_TOKEN") or None,
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Reject tunables that would only fail later, inside a request."""
        # imported here: the crawler module imports this one
        from sitechat.ingestion.crawler import normalize_url

        for seed in self.seed_urls:
            if normalize_url(seed) is None:
                raise InvalidConfiguration(f"FALLBACK_SEED_URLS entry must be an http(s) page: {seed!r}")
        for kind in ("document", "web"):
            window = CHUNKING[kind]
            if window["size"] <= 0 or not 0 <= window["overlap"] < window["size"]:
                raise InvalidConfiguration(
                    f"CHUNKING[{kind!r}] overlap must be in [0, size): {window}"
                )
