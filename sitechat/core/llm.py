import json
import re
from typing import Optional

import httpx

from sitechat.config import LLM, Settings
from sitechat.core.retry import RetryPolicy
from sitechat.errors import UpstreamServiceError

_THINK_BLOCK = re.compile(r"<(think|thinking)>.*?</\1>", re.S | re.I)
_OPEN_THINK = re.compile(r"<(think|thinking)>.*\Z", re.S | re.I)


def strip_thinking(text: str) -> str:
    """Remove <think>...</think> reasoning blocks, including an unterminated trailing one."""
    text = _THINK_BLOCK.sub("", text)
    text = _OPEN_THINK.sub("", text)
    return text.strip()


class LLMWrapper:
    """Text-in/text-out client for the Cloudflare worker chat endpoint."""

    def __init__(self, settings: Settings, retry: Optional[RetryPolicy] = None):
        self.worker_url = settings.llm_worker_url.rstrip("/")
        self.max_tokens = LLM["max_tokens"]
        self.temperature = LLM["temperature"]
        self.timeout_s = LLM["timeout_s"]
        self.retry = retry or RetryPolicy(
            max_attempts=settings.retry_max_attempts,
            base_delay_s=settings.retry_base_delay_s,
        )

    def _post(self, payload: dict) -> str:
        with httpx.Client(timeout=self.timeout_s) as client:
            response = client.post(
                f"{self.worker_url}/chat",
                json=payload,
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
            return response.text

    @staticmethod
    def _parse_body(body: str) -> str:
        # The worker answers in plain text, but some deployments wrap it as
        # {"response": "..."} or in OpenAI's choices format.
        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            return body
        if isinstance(data, dict):
            if isinstance(data.get("response"), str):
                return data["response"]
            choices = data.get("choices") or []
            if choices and isinstance(choices[0], dict):
                message = choices[0].get("message") or {}
                return message.get("content", "") or ""
        if isinstance(data, str):
            return data
        return body

    def generate(self, system_prompt: str, user_message: str) -> str:
        payload = {
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message}
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "stream": False
        }
        try:
            body = self.retry.call(lambda: self._post(payload), label="llm.generate")
        except httpx.HTTPError as e:
            print(f"[LLM] Generation failed: {e}", flush=True)
            raise UpstreamServiceError("generation", str(e)) from e
        return strip_thinking(self._parse_body(body))
