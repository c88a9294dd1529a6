# config/engines.py
from dataclasses import dataclass
from typing import Mapping
from config.settings import Settings
from model.engine import Engine


@dataclass(frozen=True)
class EngineEndpoint:
    url: str
    model: str
    api_key: str | None = None


@dataclass(frozen=True)
class EngineConfig:
    """
    Explicit engine configuration handed to every adapter at construction.
    Built from Settings in production; tests build their own.
    """

    endpoints: Mapping[Engine, EngineEndpoint]
    http_timeout: float = 30.0
    fallback_delay: float = 1.5
    dispatch_timeout: float = 45.0
    system_prompt: str = ""
    anthropic_version: str = "2023-06-01"

    def has_capability(self, engine: Engine) -> bool:
        ep = self.endpoints.get(engine)
        return bool(ep and ep.api_key and ep.api_key.strip())

    def endpoint(self, engine: Engine) -> EngineEndpoint:
        return self.endpoints[engine]

    @classmethod
    def from_settings(cls, s: Settings) -> "EngineConfig":
        return cls(
            endpoints={
                Engine.openai: EngineEndpoint(
                    s.OPENAI_API_URL, s.OPENAI_MODEL, s.OPENAI_API_KEY
                ),
                Engine.perplexity: EngineEndpoint(
                    s.PERPLEXITY_API_URL, s.PERPLEXITY_MODEL, s.PERPLEXITY_API_KEY
                ),
                Engine.anthropic: EngineEndpoint(
                    s.ANTHROPIC_API_URL, s.ANTHROPIC_MODEL, s.ANTHROPIC_API_KEY
                ),
                Engine.gemini: EngineEndpoint(
                    s.GEMINI_API_URL.format(model=s.GEMINI_MODEL),
                    s.GEMINI_MODEL,
                    s.GOOGLE_GENERATIVE_AI_API_KEY,
                ),
            },
            http_timeout=s.ENGINE_TIMEOUT_SECONDS,
            fallback_delay=s.FALLBACK_DELAY_SECONDS,
            dispatch_timeout=s.DISPATCH_TIMEOUT_SECONDS,
            system_prompt=s.EVAL_SYSTEM_PROMPT,
            anthropic_version=s.ANTHROPIC_VERSION,
        )
