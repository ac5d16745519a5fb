"""VSearch: multi-engine web search with source extraction and LLM answers."""

__version__ = "0.3.0"
