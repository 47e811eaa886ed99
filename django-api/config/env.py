from pathlib import Path
from urllib.parse import unquote, urlparse

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DJANGO_SECRET_KEY: str = "django-insecure-local-development-key"
    DJANGO_DEBUG: bool = False
    # Comma-separated host names.
    DJANGO_ALLOWED_HOSTS: str = "localhost,127.0.0.1"
    DJANGO_LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'db.sqlite3'}"

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Hosting providers hand out postgres://; treat it as postgresql://."""
        if v.startswith("postgres://"):
            return "postgresql://" + v[len("postgres://"):]
        return v

    @property
    def allowed_hosts(self) -> list[str]:
        return [h.strip() for h in self.DJANGO_ALLOWED_HOSTS.split(",") if h.strip()]

    def database(self) -> dict:
        url = urlparse(self.DATABASE_URL)
        if url.scheme == "sqlite":
            return {
                "ENGINE": "django.db.backends.sqlite3",
                # sqlite:///relative.db and sqlite:////absolute/path.db
                "NAME": unquote(url.path)[1:] or ":memory:",
            }
        if url.scheme == "postgresql":
            return {
                "ENGINE": "django.db.backends.postgresql",
                "NAME": unquote(url.path.lstrip("/")),
                "USER": unquote(url.username or ""),
                "PASSWORD": unquote(url.password or ""),
                "HOST": url.hostname or "",
                "PORT": str(url.port or ""),
                "ATOMIC_REQUESTS": False,
            }
        raise ValueError(f"Unsupported DATABASE_URL scheme: {url.scheme!r}")


env = EnvSettings()
