from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Search provider
    brave_api_key: str = ""  # token-authenticated provider; DuckDuckGo is used when empty
    search_region: str = "wt-wt"  # DuckDuckGo kl parameter
    search_timeout_seconds: float = 15.0
    search_retry_max: int = 2
    search_retry_base_delay: float = 0.5
    search_retry_max_delay: float = 4.0
    news_results_per_query: int = 5
    image_results_per_query: int = 6

    # Page fetching
    fetch_strategy: str = "http"  # http | browser
    fetch_timeout_ms: int = 10000
    fetch_max_bytes: int = 512000
    scrape_max_parallel: int = 4
    max_text_chars: int = 10000
    max_markdown_chars: int = 20000
    min_container_chars: int = 100
    min_scraped_chars: int = 50

    # Multi-layer search
    search_max_parallel: int = 3
    default_max_layers: int = 2
    default_min_coverage: float = 0.7
    default_num_results: int = 4
    aspect_weight: float = 0.6
    keyword_weight: float = 0.4
    neutral_aspect_coverage: float = 0.5

    # OpenRouter (optional, used for LLM-backed analysis only)
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_model: str = "openai/gpt-4o-mini"

    # App
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
