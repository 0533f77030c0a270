from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Completion service (OpenAI-compatible gateway, OpenRouter by default)
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "google/gemini-2.0-flash-001"
    openrouter_model: str = ""

    # Tavily (adapter is only enabled when a key is present)
    tavily_api_key: str = ""

    # Search fan-out
    search_sources: list[str] = [
        "duckduckgo",
        "wikipedia",
        "arxiv",
        "hackernews",
        "reddit",
        "github",
        "tavily",
    ]
    search_max_results_per_adapter: int = 5
    search_adapter_timeout_s: float = 20.0
    search_politeness_delay_s: float = 0.3
    http_timeout_s: float = 10.0
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    # Content extraction
    fetch_timeout_s: float = 15.0
    fetch_max_redirects: int = 5
    extractor_max_page_chars: int = 8000
    extractor_min_region_chars: int = 200
    extractor_fallback: str = "trafilatura"  # trafilatura | none

    # Analysis
    analysis_min_content_chars: int = 100
    analysis_delay_s: float = 0.2

    # Ranking / reliability tables (empty -> bundled policy)
    reliability_policy_path: str = ""

    # Orchestration
    event_channel_maxsize: int = 256
    min_query_length: int = 3

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
