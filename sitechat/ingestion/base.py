from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List


class SourceKind(str, Enum):
    DOCUMENT = "document"
    WEB = "web"


@dataclass(frozen=True)
class PassageChunk:
    content: str
    source_uri: str        # document path or page URL
    chunk_index: int       # character offset in the cleaned source text
    source_kind: SourceKind = SourceKind.DOCUMENT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "metadata": {
                "source": self.source_uri,
                "chunkIndex": self.chunk_index,
                "type": self.source_kind.value,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PassageChunk":
        metadata = data.get("metadata") or {}
        try:
            kind = SourceKind(metadata.get("type", SourceKind.DOCUMENT.value))
        except ValueError:
            kind = SourceKind.DOCUMENT
        return cls(
            content=data.get("content", ""),
            source_uri=metadata.get("source", ""),
            chunk_index=int(metadata.get("chunkIndex", 0) or 0),
            source_kind=kind,
        )


class BaseIngester(ABC):
    @abstractmethod
    def ingest(self, source_path: str) -> List[PassageChunk]:
        """Ingest a source and return a list of chunks."""
        pass
