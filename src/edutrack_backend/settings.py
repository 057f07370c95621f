import os
import threading

def _as_bool(value: str) -> bool:
    return value.lower() in ["true", "1", "yes", "on"]

class BackendSettings:
    _instance = None
    _lock = threading.Lock()

    def __init__(self):
        self.DEBUG_MODE = os.environ.get("DEBUG_MODE","development")

        # Document store
        self.DATABASE_URL = os.environ.get("DATABASE_URL", None)
        self.POSTGRES_URL = os.environ.get("POSTGRES_URL")
        self.POSTGRES_USER = os.environ.get("POSTGRES_USER")
        self.POSTGRES_PASSWORD = os.environ.get("POSTGRES_PASSWORD")
        self.POSTGRES_DB = os.environ.get("POSTGRES_DB")

        # Principal cache
        self.CACHE_BACKEND = os.environ.get("CACHE_BACKEND", "redis")
        self.REDIS_HOST = os.environ.get("REDIS_HOST", "localhost")
        self.REDIS_PORT = int(os.environ.get("REDIS_PORT", "6379"))
        self.REDIS_PASSWORD = os.environ.get("REDIS_PASSWORD", "")
        self.AUTH_CACHE_TTL = int(os.environ.get("AUTH_CACHE_TTL", "10"))

        # Identity gateway (Keycloak)
        self.KEYCLOAK_SERVER_URL = os.environ.get("KEYCLOAK_SERVER_URL", "http://localhost:8180")
        self.KEYCLOAK_REALM = os.environ.get("KEYCLOAK_REALM", "edutrack")
        self.KEYCLOAK_CLIENT_ID = os.environ.get("KEYCLOAK_CLIENT_ID", "edutrack-backend")
        self.KEYCLOAK_CLIENT_SECRET = os.environ.get("KEYCLOAK_CLIENT_SECRET", "")
        self.KEYCLOAK_ADMIN = os.environ.get("KEYCLOAK_ADMIN", "admin")
        self.KEYCLOAK_ADMIN_PASSWORD = os.environ.get("KEYCLOAK_ADMIN_PASSWORD", "admin")
        self.KEYCLOAK_VERIFY_SSL = _as_bool(os.environ.get("KEYCLOAK_VERIFY_SSL", "true"))

        # Mail
        self.SMTP_HOST = os.environ.get("SMTP_HOST", None)
        self.SMTP_PORT = int(os.environ.get("SMTP_PORT", "587"))
        self.SMTP_USER = os.environ.get("SMTP_USER", None)
        self.SMTP_PASSWORD = os.environ.get("SMTP_PASSWORD", None)
        self.SMTP_STARTTLS = _as_bool(os.environ.get("SMTP_STARTTLS", "true"))
        self.MAIL_FROM = os.environ.get("MAIL_FROM", "EduTrack <no-reply@edutrack.local>")

        self.CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]

        # Pagination
        self.DEFAULT_PAGE_SIZE = int(os.environ.get("DEFAULT_PAGE_SIZE", "20"))
        self.MAX_PAGE_SIZE = int(os.environ.get("MAX_PAGE_SIZE", "100"))

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_URL}/{self.POSTGRES_DB}"

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(BackendSettings, cls).__new__(cls)
        return cls._instance

settings = BackendSettings()
