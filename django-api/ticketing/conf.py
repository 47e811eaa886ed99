from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TicketingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TICKETING_", env_file=".env", extra="ignore")

    QR_OUTPUT_DIR: str = "./media/qrcodes"
    QR_BOX_SIZE: int = 10
    QR_BORDER: int = 2
    QR_SIZE: int = 256
    QR_ERROR_CORRECTION: str = "M"

    # Empty keeps credentials unsigned.
    CREDENTIAL_SIGNING_KEY: str = ""

    CANCELLATION_EMBARGO_HOURS: int = 24
    VALIDITY_GRACE_HOURS: int = 24
    DEFAULT_GATE: str = "Main Gate"

    @field_validator("QR_ERROR_CORRECTION", mode="after")
    @classmethod
    def normalize_error_correction(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in {"L", "M", "Q", "H"}:
            raise ValueError("QR_ERROR_CORRECTION must be one of L, M, Q, H")
        return v
