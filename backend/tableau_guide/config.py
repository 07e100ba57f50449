import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .models.document import KnowledgeMode

DEFAULT_MANUAL_URL = "https://help.tableau.com/current/offline/en-us/tableau_desktop.pdf"


class ConfigurationError(Exception):
    """Raised when the service cannot start with the current environment."""


class Settings(BaseModel):
    gemini_api_key: str
    gemini_model: str = "gemini-2.0-flash"
    host: str = "0.0.0.0"
    port: int = 3000
    manual_url: str = DEFAULT_MANUAL_URL
    manual_display_name: str = "Tableau Desktop Manual"
    manual_local_path: str = "tableau_manual.pdf"
    knowledge_mode: KnowledgeMode = KnowledgeMode.DOCUMENT
    poll_interval: float = 10.0
    max_poll_attempts: int = 60
    chunk_size: int = 1000
    chunk_overlap: int = 200
    retrieval_top_k: int = 4
    embedding_model: str = "sentence-transformers/all-mpnet-base-v2"
    download_timeout: float = 300.0
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment (and a .env file if present)."""
        load_dotenv()

        api_key = os.getenv('GEMINI_API_KEY')
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is missing in .env file.")

        mode = os.getenv('KNOWLEDGE_MODE', KnowledgeMode.DOCUMENT.value).lower()
        try:
            knowledge_mode = KnowledgeMode(mode)
        except ValueError:
            choices = ', '.join(m.value for m in KnowledgeMode)
            raise ConfigurationError(f"KNOWLEDGE_MODE must be one of: {choices}. Received: {mode}")

        try:
            return cls(
                gemini_api_key=api_key,
                gemini_model=os.getenv('GEMINI_MODEL', 'gemini-2.0-flash'),
                host=os.getenv('HOST', '0.0.0.0'),
                port=int(os.getenv('PORT', 3000)),
                manual_url=os.getenv('MANUAL_URL', DEFAULT_MANUAL_URL),
                manual_display_name=os.getenv('MANUAL_DISPLAY_NAME', 'Tableau Desktop Manual'),
                manual_local_path=os.getenv('MANUAL_LOCAL_PATH', 'tableau_manual.pdf'),
                knowledge_mode=knowledge_mode,
                poll_interval=float(os.getenv('POLL_INTERVAL_SECONDS', 10)),
                max_poll_attempts=int(os.getenv('MAX_POLL_ATTEMPTS', 60)),
                chunk_size=int(os.getenv('CHUNK_SIZE', 1000)),
                chunk_overlap=int(os.getenv('CHUNK_OVERLAP', 200)),
                retrieval_top_k=int(os.getenv('RETRIEVAL_TOP_K', 4)),
                embedding_model=os.getenv('EMBEDDING_MODEL', 'sentence-transformers/all-mpnet-base-v2'),
                download_timeout=float(os.getenv('DOWNLOAD_TIMEOUT_SECONDS', 300)),
                cors_origins=[o.strip() for o in os.getenv('CORS_ORIGINS', '*').split(',') if o.strip()],
                log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration value: {str(e)}")
