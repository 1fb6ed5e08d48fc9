import logging

import anthropic
import httpx

from app.config import Settings, settings

logger = logging.getLogger(__name__)


class CompletionError(RuntimeError):
    """The chat-completion call did not produce an answer."""


class CompletionClient:
    """Single-shot chat completion over the configured backend (OpenAI or Anthropic)."""

    def __init__(self, config: Settings = settings, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._transport = transport
        self.anthropic = None
        if self.backend == "anthropic":
            self.anthropic = anthropic.AsyncAnthropic(
                api_key=config.anthropic_api_key,
                max_retries=0,
                http_client=httpx.AsyncClient(timeout=config.completion_timeout, transport=transport),
            )

    @property
    def backend(self) -> str:
        return self.config.completion_backend

    async def aclose(self) -> None:
        if self.anthropic is not None:
            await self.anthropic.close()

    async def complete(self, system: str, prompt: str, max_tokens: int = 2500) -> str:
        """Return the model's text answer; raise CompletionError on any failure."""
        try:
            if self.backend == "anthropic":
                return await self._complete_anthropic(system, prompt, max_tokens)
            return await self._complete_openai(system, prompt, max_tokens)
        except (httpx.HTTPError, anthropic.APIError) as exc:
            logger.exception("Completion call failed")
            raise CompletionError(str(exc)) from exc

    async def _complete_openai(self, system: str, prompt: str, max_tokens: int) -> str:
        payload = {
            "model": self.config.openai_model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.1,
            "max_tokens": max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.config.openai_api_key}",
            "Content-Type": "application/json",
        }

        async with httpx.AsyncClient(timeout=self.config.completion_timeout, transport=self._transport) as client:
            resp = await client.post(
                f"{self.config.openai_base_url}/chat/completions",
                json=payload,
                headers=headers,
            )

        if not resp.is_success:
            raise CompletionError(f"OpenAI API error: {resp.status_code}")

        try:
            return resp.json()["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise CompletionError("OpenAI response had no message content") from exc

    async def _complete_anthropic(self, system: str, prompt: str, max_tokens: int) -> str:
        response = await self.anthropic.messages.create(
            model=self.config.anthropic_model,
            max_tokens=max_tokens,
            temperature=0.1,
            system=system,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(block.text for block in response.content if block.type == "text")
