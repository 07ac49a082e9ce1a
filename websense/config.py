from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Search provider
    search_provider: str = "google_cse"  # google_cse | brave
    google_cse_api_key: str = ""
    google_cse_cx: str = ""
    brave_api_key: str = ""
    search_timeout_ms: int = 30000
    search_page_delay_ms: int = 100

    # LM Studio (OpenAI-compatible chat completions)
    lmstudio_base_url: str = "http://localhost:1234/v1"
    lmstudio_model: str = "local-model"
    lmstudio_api_key: str = ""
    llm_temperature: float = 0.1
    llm_max_tokens: int = 2000

    # Scraping
    request_timeout_ms: int = 20000
    concurrent_fetches: int = 4
    extractor_primary: str = "readability"  # readability | trafilatura
    extract_in_thread: bool = False

    # Context budgeting
    per_doc_char_budget: int = 4000
    total_context_char_budget: int = 12000
    default_max_links: int = 5

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"
    log_to_file: bool = True

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide read-only settings for the API layer and CLI."""
    return Settings()
