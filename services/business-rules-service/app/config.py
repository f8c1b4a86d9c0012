# services/business-rules-service/app/config.py
from __future__ import annotations
import os
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Mongo
    mongo_uri: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    mongo_db: str = os.getenv("MONGO_DB", "business_rules")
    business_rules_collection: str = os.getenv("BUSINESS_RULES_COLLECTION", "business_rules")

    # Template catalog (directory of template-group JSON documents).
    # Empty means the template groups packaged under app/resources.
    templates_dir: str = os.getenv("TEMPLATES_DIR", "")
    # Optional override for the composite (from-scratch) app skeleton
    composite_skeleton_path: str = os.getenv("COMPOSITE_SKELETON_PATH", "")

    # Remote Siddhi execution engine
    siddhi_engine_base_url: str = os.getenv("SIDDHI_ENGINE_BASE_URL", "http://localhost:9090")
    siddhi_engine_username: str = os.getenv("SIDDHI_ENGINE_USERNAME", "admin")
    siddhi_engine_password: str = os.getenv("SIDDHI_ENGINE_PASSWORD", "admin")

    # HTTP client
    http_client_timeout_seconds: float = float(
        os.getenv("HTTP_CLIENT_TIMEOUT_SECONDS", "30")
    )
    engine_retry_attempts: int = int(os.getenv("ENGINE_RETRY_ATTEMPTS", "3"))

    # Derivation: "1" fails a template on unresolved ${...} markers, "0" leaves them in place
    strict_placeholders: bool = bool(int(os.getenv("STRICT_PLACEHOLDERS", "0")))
    script_timeout_ms: int = int(os.getenv("SCRIPT_TIMEOUT_MS", "5000"))

    # Identity
    service_name: str = os.getenv("SERVICE_NAME", "business-rules-service")
    service_version: str = os.getenv("SERVICE_VERSION", "0.1.0")

    model_config = SettingsConfigDict(env_file=None, extra="ignore")


settings = Settings()
