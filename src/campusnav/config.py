"""Application configuration via environment variables and .env file."""

from pathlib import Path
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode
from pydantic_settings.sources import DotEnvSettingsSource, PydanticBaseSettingsSource

# Path to .env file (patch in tests to use tmp_path / ".env")
_ENV_FILE: Path = Path(".env")


class Settings(BaseSettings):
    model_config = {
        "env_prefix": "CAMPUSNAV_",
        "env_file_encoding": "utf-8",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Load .env from _ENV_FILE (patchable in tests)
        return (
            init_settings,
            env_settings,
            DotEnvSettingsSource(
                settings_cls,
                env_file=_ENV_FILE,
                env_file_encoding="utf-8",
            ),
            file_secret_settings,
        )

    # Database
    db_path: Path = Path("./data/campusnav.db")

    # Logging
    log_level: str = "info"

    # Ingestion sources to run simultaneously
    # Env: CAMPUSNAV_INGEST_MODES="mqtt,mock"
    ingest_modes: Annotated[list[str], NoDecode] = ["mqtt"]

    # MQTT broker (shared by backend subscriber and scanner publisher)
    mqtt_host: str | None = None
    mqtt_port: int = 8883
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_tls: bool = True
    mqtt_topic_prefix: str = "campusnav/faculty"  # scanners publish to <prefix>/<scannerId>
    mqtt_qos: int = 1
    mqtt_reconnect_interval: int = 10  # seconds

    # Detection validation
    faculty_id_prefix: str = "FAC_"
    scanner_id_prefix: str = "SC_"
    rssi_min: int = -120
    rssi_max: int = 0

    # Records seen within this window are listed as present
    presence_grace_period: int = 180  # seconds

    # Room scanner agent
    scanner_id: str = "SC_D103"
    scanner_room: str = "D103"
    scanner_transport: str = "mqtt"  # "mqtt" or "http"
    scanner_source: str = "ble"  # "ble" or "mock"
    scan_time: float = 5.0  # seconds of BLE scanning per cycle
    cycle_period: float = 60.0  # scan + emit + sleep
    scanner_buffer_size: int = 10
    publish_retry_max: int = 5
    publish_retry_delay: float = 2.0
    tag_payload_prefix: str = "FAC_"
    backend_url: str = "http://localhost:8000"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("ingest_modes", mode="before")
    @classmethod
    def parse_ingest_modes(cls, v: object) -> list[str]:
        """Parse comma-separated string or list."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        if isinstance(v, list):
            return [s for s in v if s]
        return []

    def get_active_ingest_modes(self) -> list[str]:
        """Return configured ingest modes, ignoring the "none" placeholder."""
        return [m for m in self.ingest_modes if m != "none"]


def load_config() -> Settings:
    """Load configuration from .env and environment (env overrides .env)."""
    return Settings()


settings = Settings()
