"""Runtime configuration loaded from environment variables."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

_DEFAULT_FRAME_ANCESTORS = (
    "'self' https://*.google.com https://sites.google.com "
    "https://www.vtwoods.xyz https://vtwoods.xyz"
)


def _is_true(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


class Settings:
    API_HOST = os.getenv("API_HOST", "0.0.0.0")
    API_PORT = int(os.getenv("PORT", "8000"))
    API_KEY = os.getenv("API_KEY", "").strip()
    FRAME_ANCESTORS = os.getenv("FRAME_ANCESTORS", _DEFAULT_FRAME_ANCESTORS).strip()

    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
    VECTOR_STORE_ID = os.getenv("VECTOR_STORE_ID", "").strip()
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")
    OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/")
    OPENAI_TIMEOUT_SEC = float(os.getenv("OPENAI_TIMEOUT_SEC", "60"))
    HTTP_RETRIES = int(os.getenv("HTTP_RETRIES", "2"))
    HTTP_RETRY_BACKOFF_SEC = float(os.getenv("HTTP_RETRY_BACKOFF_SEC", "0.5"))

    SCOPE_MIN_TOPIC_HITS = int(os.getenv("SCOPE_MIN_TOPIC_HITS", "1"))
    SCOPE_VOCABULARY_FILE = os.getenv("SCOPE_VOCABULARY_FILE", "").strip()
    SYSTEM_PROMPT_FILE = os.getenv("SYSTEM_PROMPT_FILE", "").strip()
    ENABLE_RELEVANCE_CHECK = _is_true("ENABLE_RELEVANCE_CHECK", "false")
    RELEVANCE_MAX_RESULTS = int(os.getenv("RELEVANCE_MAX_RESULTS", "5"))

    DOCS_DIR = os.getenv("DOCS_DIR", "data/docs")
    RUNS_DIR = os.getenv("RUNS_DIR", "data/runs")


settings = Settings()


class ConfigurationMissing(RuntimeError):
    """A required credential or store id is absent for this request."""


@dataclass(frozen=True)
class ChatConfig:
    """Immutable per-process configuration handed to the router."""

    api_key: str
    vector_store_id: str
    model: str = "gpt-4.1-mini"
    base_url: str = "https://api.openai.com/v1"
    timeout_sec: float = 60.0
    relevance_check: bool = False
    relevance_max_results: int = 5

    @classmethod
    def from_settings(cls, source: Settings = settings) -> "ChatConfig":
        return cls(
            api_key=source.OPENAI_API_KEY,
            vector_store_id=source.VECTOR_STORE_ID,
            model=source.OPENAI_MODEL,
            base_url=source.OPENAI_BASE_URL,
            timeout_sec=source.OPENAI_TIMEOUT_SEC,
            relevance_check=source.ENABLE_RELEVANCE_CHECK,
            relevance_max_results=max(1, source.RELEVANCE_MAX_RESULTS),
        )

    def missing_fields(self) -> list[str]:
        missing = []
        if not self.api_key:
            missing.append("OPENAI_API_KEY")
        if not self.vector_store_id:
            missing.append("VECTOR_STORE_ID")
        return missing

    def require_credentials(self) -> None:
        missing = self.missing_fields()
        if missing:
            raise ConfigurationMissing(
                f"Server is missing {missing[0]}. Set it in the server environment variables."
            )
