import pytest

from sitechat.config import Settings


@pytest.fixture
def settings(tmp_path):
    return Settings(
        index_name="test_index",
        zilliz_uri="http://milvus.test:19530",
        jina_api_key="jina-test",
        llm_worker_url="http://worker.test",
        documents_dir=str(tmp_path / "docs"),
        retry_max_attempts=2,
        retry_base_delay_s=0.0,
    )

