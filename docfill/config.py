"""
Load env from the project root .env. Used by the Flask app, the court tables and the extraction client.
Encapsulates configuration in a Config class (OOP).
"""
import os
from pathlib import Path

from dotenv import load_dotenv

_project_root = Path(__file__).resolve().parent.parent

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

JURISDICTION_RULES_FILENAME = "Jurisdiction_Rules.csv"
COURT_INFO_FILENAME = "Court_Info.csv"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


class Config:
    """
    Holds paths, extraction backend and retry settings loaded from the environment.
    Single responsibility: load and expose environment-based settings.
    """

    _env_file = _project_root / ".env"

    def __init__(self):
        self._load_env()
        self._data_dir = Path(os.getenv("DOCFILL_DATA_DIR", "").strip() or _project_root / "data")
        self._templates_dir = Path(os.getenv("DOCFILL_TEMPLATES_DIR", "").strip() or _project_root / "templates")
        self._extraction_prompt_file = os.getenv("DOCFILL_EXTRACTION_PROMPT", "").strip()
        self._google_api_key = os.getenv("GOOGLE_API_KEY", "").strip()
        self._gemini_model = os.getenv("GEMINI_MODEL", "gemini-2.0-flash-001").strip()
        self._openai_api_key = os.getenv("OPENAI_API_KEY", "").strip()
        self._azure_endpoint = os.getenv("AZURE_OPENAI_ENDPOINT", "").strip()
        self._azure_api_key = os.getenv("AZURE_OPENAI_API_KEY", "").strip()
        self._azure_api_version = os.getenv("AZURE_OPENAI_API_VERSION", "2024-12-01-preview").strip()
        self._azure_deployment = os.getenv("AZURE_OPENAI_DEPLOYMENT", "gpt-4o-mini").strip()
        self._use_azure_openai = bool(self._azure_endpoint and self._azure_api_key)
        self._max_retries = _env_int("EXTRACTION_MAX_RETRIES", 3)
        self._retry_base_delay = _env_float("EXTRACTION_RETRY_BASE_DELAY", 1.0)
        self._retry_max_delay = _env_float("EXTRACTION_RETRY_MAX_DELAY", 30.0)
        self._request_timeout = _env_float("EXTRACTION_TIMEOUT", 300.0)
        self._log_level = os.getenv("DOCFILL_LOG_LEVEL", "INFO").strip().upper() or "INFO"
        self._port = _env_int("PORT", 3000)

    def _load_env(self) -> None:
        if self._env_file.exists():
            load_dotenv(self._env_file)

    @property
    def DATA_DIR(self) -> Path:
        return self._data_dir

    @property
    def TEMPLATES_DIR(self) -> Path:
        return self._templates_dir

    @property
    def JURISDICTION_RULES_PATH(self) -> Path:
        return self._data_dir / JURISDICTION_RULES_FILENAME

    @property
    def COURT_INFO_PATH(self) -> Path:
        return self._data_dir / COURT_INFO_FILENAME

    @property
    def EXTRACTION_PROMPT_FILE(self) -> str:
        return self._extraction_prompt_file

    @property
    def GOOGLE_API_KEY(self) -> str:
        return self._google_api_key

    @property
    def GEMINI_MODEL(self) -> str:
        return self._gemini_model

    @property
    def OPENAI_API_KEY(self) -> str:
        return self._openai_api_key

    @property
    def AZURE_OPENAI_ENDPOINT(self) -> str:
        return self._azure_endpoint

    @property
    def AZURE_OPENAI_API_KEY(self) -> str:
        return self._azure_api_key

    @property
    def AZURE_OPENAI_API_VERSION(self) -> str:
        return self._azure_api_version

    @property
    def AZURE_OPENAI_DEPLOYMENT(self) -> str:
        return self._azure_deployment

    @property
    def USE_AZURE_OPENAI(self) -> bool:
        return self._use_azure_openai

    @property
    def USE_OPENAI(self) -> bool:
        return bool(self._use_azure_openai or self._openai_api_key)

    @property
    def EXTRACTION_MAX_RETRIES(self) -> int:
        return max(1, self._max_retries)

    @property
    def EXTRACTION_RETRY_BASE_DELAY(self) -> float:
        return self._retry_base_delay

    @property
    def EXTRACTION_RETRY_MAX_DELAY(self) -> float:
        return self._retry_max_delay

    @property
    def EXTRACTION_TIMEOUT(self) -> float:
        return self._request_timeout

    @property
    def LOG_LEVEL(self) -> str:
        return self._log_level

    @property
    def PORT(self) -> int:
        return self._port


# Singleton-like default instance for module-level access
_default_config = Config()

DATA_DIR = _default_config.DATA_DIR
TEMPLATES_DIR = _default_config.TEMPLATES_DIR
LOG_LEVEL = _default_config.LOG_LEVEL
