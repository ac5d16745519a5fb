"""Centralised settings for the VSearch backend.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Fetch client
    # ------------------------------------------------------------------
    fetch_timeout: float = field(
        default_factory=lambda: float(os.environ.get("FETCH_TIMEOUT", "15.0"))
    )
    fetch_max_retries: int = field(
        default_factory=lambda: int(os.environ.get("FETCH_MAX_RETRIES", "3"))
    )
    fetch_retry_delay: float = field(
        default_factory=lambda: float(os.environ.get("FETCH_RETRY_DELAY", "1.0"))
    )

    # ------------------------------------------------------------------
    # Link discovery
    # ------------------------------------------------------------------
    engine_link_target: int = field(
        default_factory=lambda: int(os.environ.get("ENGINE_LINK_TARGET", "15"))
    )
    aggregate_link_cap: int = field(
        default_factory=lambda: int(os.environ.get("AGGREGATE_LINK_CAP", "20"))
    )

    # ------------------------------------------------------------------
    # Scraper
    # ------------------------------------------------------------------
    scrape_concurrency: int = field(
        default_factory=lambda: int(os.environ.get("SCRAPE_CONCURRENCY", "4"))
    )
    scrape_enough_sources: int = field(
        default_factory=lambda: int(os.environ.get("SCRAPE_ENOUGH_SOURCES", "3"))
    )
    technique_timeout_step: float = field(
        default_factory=lambda: float(os.environ.get("TECHNIQUE_TIMEOUT_STEP", "5.0"))
    )
    max_source_chars: int = field(
        default_factory=lambda: int(os.environ.get("MAX_SOURCE_CHARS", "8000"))
    )

    # ------------------------------------------------------------------
    # Sources request
    # ------------------------------------------------------------------
    default_source_count: int = field(
        default_factory=lambda: int(os.environ.get("DEFAULT_SOURCE_COUNT", "4"))
    )
    max_source_count: int = field(
        default_factory=lambda: int(os.environ.get("MAX_SOURCE_COUNT", "8"))
    )
    # Deadline for one /sources request in the HTTP API; 0 disables it.
    sources_request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SOURCES_REQUEST_TIMEOUT", "120.0"))
    )

    # ------------------------------------------------------------------
    # Chat / synthesis model
    # ------------------------------------------------------------------
    llm_provider: str = field(
        default_factory=lambda: os.environ.get("LLM_PROVIDER", "ollama")
    )
    ollama_base_url: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")
    )
    ollama_chat_model: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_CHAT_MODEL", "llama3.1:8b")
    )
    openai_chat_model: str = field(
        default_factory=lambda: os.environ.get("OPENAI_CHAT_MODEL", "gpt-4o-mini")
    )
    # Any OpenAI-compatible endpoint (Cerebras, Groq, vLLM, ...).  Empty means
    # the official OpenAI API.
    openai_base_url: str = field(
        default_factory=lambda: os.environ.get("OPENAI_BASE_URL", "")
    )
    llm_temperature: float = field(
        default_factory=lambda: float(os.environ.get("LLM_TEMPERATURE", "0.2"))
    )
    llm_max_tokens: int = field(
        default_factory=lambda: int(os.environ.get("LLM_MAX_TOKENS", "2048"))
    )
    synthesis_max_retries: int = field(
        default_factory=lambda: int(os.environ.get("SYNTHESIS_MAX_RETRIES", "3"))
    )
    synthesis_retry_delay: float = field(
        default_factory=lambda: float(os.environ.get("SYNTHESIS_RETRY_DELAY", "1.0"))
    )

    # ------------------------------------------------------------------
    # CLI state (history / preferences)
    # ------------------------------------------------------------------
    cli_config_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("VSEARCH_CLI_DIR", Path.home() / ".vsearch")
        )
    )

    @property
    def llm_model_name(self) -> str:
        """Name of the chat model selected by ``llm_provider``."""
        if self.llm_provider == "openai":
            return self.openai_chat_model
        return self.ollama_chat_model


# Module-level singleton, import this everywhere:
#   from vsearch.config import settings
settings = Settings()
