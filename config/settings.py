"""Application settings."""

import os
from typing import Optional
from pydantic import BaseModel


class Settings(BaseModel):
    """Application configuration settings."""

    # Catalog data source: HTTP API when a base URL is set, local JSON otherwise
    catalog_api_url: Optional[str] = None
    catalog_api_token: Optional[str] = None
    catalog_json_path: Optional[str] = None  # defaults to data/sample_catalog.json

    # LLM Provider settings
    llm_provider: str = "openai"  # "openai" or "anthropic"
    llm_model: Optional[str] = None  # Override default model

    # API Keys
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    # Memory settings
    memory_backend: str = "memory"  # "memory" or "sqlite"
    db_path: str = "data/sessions.db"
    context_stack_size: int = 10

    # Retrieval settings
    external_timeout_s: float = 8.0
    suggestion_terms: int = 3
    correction_threshold: float = 0.72
    vocabulary_path: Optional[str] = None
    categories_path: Optional[str] = None

    # Generation settings
    generation_temperature: float = 0.4
    generation_max_tokens: int = 800

    # Logging
    verbose: bool = False

    def __init__(self, **data):
        # Auto-load secrets and endpoints from environment if not provided
        if "openai_api_key" not in data or data["openai_api_key"] is None:
            data["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

        if "anthropic_api_key" not in data or data["anthropic_api_key"] is None:
            data["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

        if "catalog_api_url" not in data or data["catalog_api_url"] is None:
            data["catalog_api_url"] = os.environ.get("CATALOG_API_URL")

        if "catalog_api_token" not in data or data["catalog_api_token"] is None:
            data["catalog_api_token"] = os.environ.get("CATALOG_API_TOKEN")

        super().__init__(**data)

    def get_llm_api_key(self) -> Optional[str]:
        """Get the API key for the configured LLM provider."""
        if self.llm_provider == "openai":
            return self.openai_api_key
        elif self.llm_provider == "anthropic":
            return self.anthropic_api_key
        return None
