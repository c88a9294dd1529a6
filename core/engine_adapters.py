# core/engine_adapters.py
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict
import httpx
from config.engines import EngineConfig
from model.engine import ENGINE_KEY_NAMES, Engine
from model.evaluation import EvaluationOutcome
from util.functions import extract_json_object
from util.timing import timed
from util.types import ChatMessage

logger = logging.getLogger(__name__)

FALLBACK_SCORE = 80
FALLBACK_MARKER = "[MOCK]"


def fallback_outcome(engine: Engine) -> EvaluationOutcome:
    """Deterministic placeholder returned whenever a real call is impossible or failed."""
    key = ENGINE_KEY_NAMES[engine]
    return EvaluationOutcome(
        accuracy_score=FALLBACK_SCORE,
        inaccuracies=[
            f"Mock evaluation: no {key} is configured.",
            "Set the API key and re-run the audit to get real results.",
        ],
        raw_reply=(
            f"{FALLBACK_MARKER} Simulated {engine.value} response. "
            "Configure the API key to run a real audit."
        ),
        is_fallback=True,
    )


def parse_outcome(text: str) -> EvaluationOutcome:
    """
    Normalize a model reply into an EvaluationOutcome.
    Raises ValueError/TypeError on anything that is not the agreed JSON shape.
    """
    parsed = extract_json_object(text)
    score = int(round(float(parsed.get("accuracy_score", 0))))
    items = parsed.get("inaccuracies", parsed.get("hallucinations_detected", []))
    if not isinstance(items, list):
        raise TypeError("inaccuracies is not a list")
    return EvaluationOutcome(
        accuracy_score=min(100, max(0, score)),
        inaccuracies=[str(i).strip() for i in items if str(i).strip()],
        raw_reply=str(parsed.get("response_text") or text),
    )


class EngineAdapter(ABC):
    """
    One provider integration. evaluate() never raises for provider problems:
    unconfigured and failed calls both come back as fallback_outcome(), and
    both take at least config.fallback_delay seconds so callers see the same
    timing either way.
    """

    engine: Engine

    def __init__(
        self,
        config: EngineConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    async def evaluate(self, prompt: str) -> EvaluationOutcome:
        if not self._config.has_capability(self.engine):
            logger.info("engine.fallback engine=%s reason=unconfigured", self.engine.value)
            await asyncio.sleep(self._config.fallback_delay)
            return fallback_outcome(self.engine)

        with timed(logger, "engine.call", engine=self.engine.value) as sw:
            try:
                text = await self._complete(prompt)
                outcome = parse_outcome(text)
            except Exception as e:
                logger.warning(
                    "engine.fallback engine=%s reason=%s", self.engine.value, type(e).__name__
                )
                await asyncio.sleep(max(0.0, self._config.fallback_delay - sw.elapsed))
                return fallback_outcome(self.engine)

        logger.info(
            "engine.result engine=%s score=%d inaccuracies=%d",
            self.engine.value,
            outcome.accuracy_score,
            len(outcome.inaccuracies),
        )
        return outcome

    async def _post_json(
        self, url: str, headers: Dict[str, str], payload: Dict[str, Any]
    ) -> Dict[str, Any]:
        """JSON POST bounded by the configured timeout. Raises for non-2xx."""
        async with httpx.AsyncClient(
            timeout=self._config.http_timeout, transport=self._transport
        ) as client:
            r = await client.post(url, headers=headers, json=payload)
            r.raise_for_status()
            return r.json()

    def _messages(self, prompt: str) -> list[ChatMessage]:
        return [
            {"role": "system", "content": self._config.system_prompt},
            {"role": "user", "content": prompt},
        ]

    @abstractmethod
    async def _complete(self, prompt: str) -> str:
        """Send the prompt to the provider and return the reply text."""


class OpenAIAdapter(EngineAdapter):
    engine = Engine.openai

    def _payload(self, model: str, prompt: str) -> Dict[str, Any]:
        return {
            "model": model,
            "messages": self._messages(prompt),
            "response_format": {"type": "json_object"},
            "temperature": 0.0,
        }

    async def _complete(self, prompt: str) -> str:
        ep = self._config.endpoint(self.engine)
        data = await self._post_json(
            ep.url,
            {
                "Authorization": f"Bearer {ep.api_key}",
                "content-type": "application/json",
            },
            self._payload(ep.model, prompt),
        )
        return data["choices"][0]["message"]["content"] or ""


class PerplexityAdapter(OpenAIAdapter):
    # OpenAI-compatible chat API, but no json_object response_format.
    engine = Engine.perplexity

    def _payload(self, model: str, prompt: str) -> Dict[str, Any]:
        return {
            "model": model,
            "messages": self._messages(prompt),
            "temperature": 0.0,
        }


class AnthropicAdapter(EngineAdapter):
    engine = Engine.anthropic

    async def _complete(self, prompt: str) -> str:
        ep = self._config.endpoint(self.engine)
        data = await self._post_json(
            ep.url,
            {
                "x-api-key": ep.api_key or "",
                "anthropic-version": self._config.anthropic_version,
                "content-type": "application/json",
            },
            {
                "model": ep.model,
                "max_tokens": 800,
                "system": self._config.system_prompt,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": 0.0,
            },
        )
        node = (data.get("content") or [])[0]
        if node.get("type") != "text":
            raise ValueError("unexpected content block")
        return node.get("text") or ""


class GeminiAdapter(EngineAdapter):
    engine = Engine.gemini

    async def _complete(self, prompt: str) -> str:
        ep = self._config.endpoint(self.engine)
        data = await self._post_json(
            ep.url,
            {
                "x-goog-api-key": ep.api_key or "",
                "content-type": "application/json",
            },
            {
                "systemInstruction": {"parts": [{"text": self._config.system_prompt}]},
                "contents": [{"role": "user", "parts": [{"text": prompt}]}],
                "generationConfig": {
                    "temperature": 0.0,
                    "responseMimeType": "application/json",
                },
            },
        )
        parts = data["candidates"][0]["content"]["parts"]
        return "".join(p.get("text", "") for p in parts)


ADAPTER_TYPES: dict[Engine, type[EngineAdapter]] = {
    Engine.openai: OpenAIAdapter,
    Engine.perplexity: PerplexityAdapter,
    Engine.anthropic: AnthropicAdapter,
    Engine.gemini: GeminiAdapter,
}


def build_adapters(
    config: EngineConfig, transport: httpx.AsyncBaseTransport | None = None
) -> dict[Engine, EngineAdapter]:
    return {engine: cls(config, transport) for engine, cls in ADAPTER_TYPES.items()}
