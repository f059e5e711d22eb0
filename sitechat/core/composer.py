from typing import Iterable, List, Optional, Sequence, Tuple

from sitechat.core.llm import LLMWrapper
from sitechat.ingestion.base import PassageChunk

ConversationTurn = Tuple[str, str]

NO_HISTORY = "No prior history."

CONDENSE_SYSTEM_PROMPT = (
    "You rewrite follow-up questions. Reply with the standalone question only, "
    "no preamble and no explanation."
)

CONDENSE_TEMPLATE = """Given the following conversation and a follow up question, rephrase the follow up question to be a standalone question.
Resolve pronouns like "it", "that" or "they" to what they refer to in the conversation.

<chat_history>
{chat_history}
</chat_history>

Follow Up Input: {question}
Standalone question:"""

QA_SYSTEM_PROMPT = """You are an expert, helpful AI assistant.
Use the provided context to answer the question if it is relevant.
If the context does not contain the answer, answer fully from your own knowledge.
Never say "I am not sure", "I don't know" or that you lack information.
Never mention the context, the sources or the chat history explicitly in your answer."""

QA_TEMPLATE = """<context>
{context}
</context>

<chat_history>
{chat_history}
</chat_history>

Question: {question}

Answer in markdown, directly and naturally, without phrases like "Based on the provided context" or similar introductions:"""


def combine_documents(passages: Iterable[PassageChunk], separator: str = "\n\n") -> str:
    return separator.join(p.content for p in passages)


def format_history(history: Optional[Sequence[ConversationTurn]]) -> str:
    """Oldest-first transcript of Human/Assistant turn pairs."""
    if not history:
        return NO_HISTORY
    turns: List[str] = []
    for human, assistant in history:
        turns.append(f"Human: {human}\nAssistant: {assistant}")
    return "\n\n".join(turns)


class PromptComposer:
    def __init__(self, llm: LLMWrapper, rewrite_question: bool = True):
        self.llm = llm
        self.rewrite_question = rewrite_question

    def standalone_question(self, question: str, history: Optional[Sequence[ConversationTurn]]) -> str:
        """Rewrite a follow-up into a self-contained question; first turns pass through."""
        if not history or not self.rewrite_question:
            return question
        prompt = CONDENSE_TEMPLATE.format(chat_history=format_history(history), question=question)
        rewritten = self.llm.generate(CONDENSE_SYSTEM_PROMPT, prompt).strip()
        if not rewritten:
            return question
        print(f"[Composer] Standalone question: {rewritten[:100]}", flush=True)
        return rewritten

    def build_prompt(self, question: str, context: str, history: Optional[Sequence[ConversationTurn]]) -> str:
        return QA_TEMPLATE.format(
            context=context,
            chat_history=format_history(history),
            question=question,
        )

    def answer(self, question: str, context: str, history: Optional[Sequence[ConversationTurn]] = None) -> str:
        standalone = self.standalone_question(question, history)
        user_message = self.build_prompt(standalone, context, history)
        return self.llm.generate(QA_SYSTEM_PROMPT, user_message)
