# model/engine.py
from enum import Enum


class Engine(str, Enum):
    openai = "openai"
    perplexity = "perplexity"
    anthropic = "anthropic"
    gemini = "gemini"


# Environment variable holding each engine's credential; surfaced in fallback diagnostics.
ENGINE_KEY_NAMES: dict[Engine, str] = {
    Engine.openai: "OPENAI_API_KEY",
    Engine.perplexity: "PERPLEXITY_API_KEY",
    Engine.anthropic: "ANTHROPIC_API_KEY",
    Engine.gemini: "GOOGLE_GENERATIVE_AI_API_KEY",
}
