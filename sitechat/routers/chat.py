from typing import List, Optional, Tuple

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from sitechat.core.composer import ConversationTurn
from sitechat.core.orchestrator import KnowledgeOrchestrator
from sitechat.errors import InvalidRequest

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatRequest(BaseModel):
    question: Optional[str] = None
    history: Optional[List[Tuple[str, str]]] = None  # [[human, assistant], ...] oldest first


class SourceMetadata(BaseModel):
    source: str
    chunkIndex: int
    type: str


class SourceDocument(BaseModel):
    content: str
    metadata: SourceMetadata


class ChatResponse(BaseModel):
    text: str
    sourceDocuments: List[SourceDocument]


def _require_question(body: Optional[ChatRequest]) -> str:
    if body is None or not body.question or not body.question.strip():
        raise InvalidRequest("No question in the request")
    return body.question


def get_orchestrator(request: Request) -> KnowledgeOrchestrator:
    return request.app.state.orchestrator


@router.post("", response_model=ChatResponse)
async def chat(request: Request, body: Optional[ChatRequest] = None):
    """Answer a question from the document index, falling back to the live site."""
    try:
        question = _require_question(body)
    except InvalidRequest as e:
        return JSONResponse(status_code=e.status_code, content={"message": str(e)})

    history: List[ConversationTurn] = list(body.history or [])
    print(f"[Chat] question={question[:80]!r} history_turns={len(history)}", flush=True)

    try:
        result = await get_orchestrator(request).run(question, history)
    except Exception as e:
        print(f"[Chat] Error in handler: {type(e).__name__}: {e}", flush=True)
        return JSONResponse(status_code=500, content={"error": str(e) or "Something went wrong"})

    print(
        f"[Chat] answered ({len(result.answer_text)} chars, fallback={result.used_fallback}, "
        f"sources={len(result.source_documents)})",
        flush=True,
    )
    return ChatResponse(
        text=result.answer_text,
        sourceDocuments=[SourceDocument(**doc.to_dict()) for doc in result.source_documents],
    )
