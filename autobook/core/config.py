
from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    app_name: str = Field("autobook", alias="APP_NAME")
    app_env: str = Field("dev", alias="APP_ENV")

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, alias="LOG_FILE")

    # LLM fallback (OpenAI-compatible chat completions, e.g. DeepSeek)
    llm_base_url: str | None = Field(default=None, alias="LLM_BASE_URL")
    llm_api_key: str | None = Field(default=None, alias="LLM_API_KEY")
    llm_model: str = Field("deepseek-chat", alias="LLM_MODEL")
    llm_timeout_seconds: float = Field(60.0, alias="LLM_TIMEOUT_SECONDS")
    llm_temperature: float = Field(0.1, alias="LLM_TEMPERATURE")
    ai_fallback_enabled: bool = Field(True, alias="AI_FALLBACK_ENABLED")

    # Azure Document Intelligence (OCR)
    az_di_endpoint: str | None = Field(default=None, alias="AZ_DI_ENDPOINT")
    az_di_api_key: str | None = Field(default=None, alias="AZ_DI_API_KEY")

    # Extraction rules file (JSON or YAML); bundled defaults when unset
    extraction_rules_path: str | None = Field(default=None, alias="EXTRACTION_RULES_PATH")

    # Storage
    bills_db_path: str = Field("bills.db", alias="BILLS_DB_PATH")

    # Background recognition workers
    worker_concurrency: int = Field(2, alias="WORKER_CONCURRENCY")
    worker_max_retries: int = Field(3, alias="WORKER_MAX_RETRIES")

    # Screenshot detection keywords (comma-separated, matched against path and file name)
    screenshot_keywords: str = Field("screenshot,截屏", alias="SCREENSHOT_KEYWORDS")

    # Bill types counted by the summary views (comma-separated)
    expense_types: str = Field("支出,自动提取", alias="EXPENSE_TYPES")

    # CORS allowed origins (comma-separated list for production deployment)
    cors_origins: str = Field("http://localhost:3000,http://127.0.0.1:3000", alias="CORS_ORIGINS")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

settings = Settings()


def split_csv(value: str) -> list[str]:
    """Split a comma-separated setting into trimmed, non-empty items"""
    return [item.strip() for item in (value or "").split(",") if item.strip()]
