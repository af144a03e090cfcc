from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenRouter
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "google/gemini-2.5-flash"
    openrouter_model: str = ""
    planner_model: str = ""  # optional override for plan generation only
    synthesis_model: str = ""  # optional override for the final report only
    llm_timeout_seconds: float = 120.0

    # Models allowed to drive the tool loop (substring match on the model id)
    tool_capable_model_markers: str = "gemini,gpt-4o,gpt-4.1,gpt-5,claude,o3,o4-mini"

    # Search provider
    search_provider: str = "tavily"  # tavily | brave
    tavily_api_key: str = ""
    brave_api_key: str = ""
    search_fallback_to_tavily: bool = True
    search_timeout_seconds: float = 30.0
    search_max_results_per_query: int = 2
    search_snippet_chars: int = 800
    search_recency_years: int = 0  # 0 = current year only
    max_parallel_searches: int = 4

    # Content enrichment
    content_max_chars: int = 1500
    content_fetch_timeout_seconds: float = 5.0
    max_parallel_enrichment: int = 6

    # Tool loop
    agent_max_steps: int = 4
    agent_max_tokens: int = 4096

    # Synthesis
    synthesis_max_sources: int = 10
    synthesis_source_chars: int = 1000
    synthesis_max_tokens: int = 8192
    fallback_report_sources: int = 5
    fallback_report_source_chars: int = 500
    report_source_chars: int = 1500

    # Sandbox
    daytona_api_key: str = ""
    daytona_api_url: str = "https://app.daytona.io/api"
    daytona_target: str = "us"
    sandbox_timeout_seconds: float = 120.0
    sandbox_preinstalled_libraries: str = (
        "pandas,numpy,scipy,keras,seaborn,matplotlib,transformers,scikit-learn"
    )

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]

    @property
    def tool_capable_model_list(self) -> list[str]:
        return [m.strip().lower() for m in self.tool_capable_model_markers.split(",") if m.strip()]

    @property
    def preinstalled_library_list(self) -> list[str]:
        return [lib.strip() for lib in self.sandbox_preinstalled_libraries.split(",") if lib.strip()]


settings = Settings()
