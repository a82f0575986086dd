import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    API_KEY: str = os.getenv("API_KEY", "")

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    RQ_QUEUE_NAME: str = os.getenv("RQ_QUEUE_NAME", "case_dispatch")

    # "redis" for deployments, "memory" for local runs without Redis
    STORE_BACKEND: str = os.getenv("STORE_BACKEND", "redis").lower()
    # 0 keeps conversations forever
    CONVERSATION_TTL_SEC: int = int(os.getenv("CONVERSATION_TTL_SEC", "604800"))
    LOCK_TTL_MS: int = int(os.getenv("LOCK_TTL_MS", "15000"))

    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    # Category labels, "|"-separated. Empty uses the built-in municipal list.
    HAZARD_CATEGORIES: str = os.getenv("HAZARD_CATEGORIES", "")
    CASE_REFERENCE_PREFIX: str = os.getenv("CASE_REFERENCE_PREFIX", "")

    # Completed reports are POSTed here by the dispatch job (disabled when empty)
    CASE_WEBHOOK_URL: str = os.getenv("CASE_WEBHOOK_URL", "")
    CASE_DISPATCH_MAX_RETRIES: int = int(os.getenv("CASE_DISPATCH_MAX_RETRIES", "5"))
    # Outbound chat connector; when empty replies are only returned in the HTTP response
    CHANNEL_WEBHOOK_URL: str = os.getenv("CHANNEL_WEBHOOK_URL", "")
    WEBHOOK_TIMEOUT_SEC: float = float(os.getenv("WEBHOOK_TIMEOUT_SEC", "5"))

    # Security & Privacy
    ENABLE_PII_REDACTION: bool = os.getenv("ENABLE_PII_REDACTION", "true").lower() == "true"
    ADMIN_RBAC_ENABLED: bool = os.getenv("ADMIN_RBAC_ENABLED", "true").lower() == "true"
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")

settings = Settings()
