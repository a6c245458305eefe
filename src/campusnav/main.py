"""CampusNav backend entrypoint."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from campusnav import database
from campusnav.config import Settings, load_config, settings
from campusnav.ingest.base import BaseIngestSource
from campusnav.ingest.service import IngestionService
from campusnav.ingest.validator import DetectionValidator

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


def _create_source(mode: str, cfg: Settings) -> BaseIngestSource | None:
    """Factory: instantiate the configured ingestion source."""
    if mode == "mqtt":
        from campusnav.ingest.mqtt import MqttIngestSource

        if not cfg.mqtt_host:
            logger.warning("MQTT mode selected but mqtt_host not configured")
            return None
        if not cfg.mqtt_username or not cfg.mqtt_password:
            logger.warning("MQTT credentials not configured, connecting anonymously")
        return MqttIngestSource(
            host=cfg.mqtt_host,
            port=cfg.mqtt_port,
            username=cfg.mqtt_username,
            password=cfg.mqtt_password,
            tls=cfg.mqtt_tls,
            topic_prefix=cfg.mqtt_topic_prefix,
            qos=cfg.mqtt_qos,
            reconnect_interval=cfg.mqtt_reconnect_interval,
        )
    if mode == "mock":
        from campusnav.ingest.mock import MockIngestSource

        return MockIngestSource(poll_interval=5, topic_prefix=cfg.mqtt_topic_prefix)
    logger.warning("Unknown ingest mode '%s', skipping", mode)
    return None


async def _start_sources(app: FastAPI, cfg: Settings) -> None:
    """Start all configured ingestion sources."""
    sources: dict[str, BaseIngestSource] = {}
    for mode in cfg.get_active_ingest_modes():
        source = _create_source(mode, cfg)
        if source:
            source.on_message(app.state.ingest.handle_message)
            await source.start()
            sources[mode] = source
            logger.info("Ingest source started: %s", mode)

    if not sources:
        logger.info("No ingest sources configured; HTTP scanner endpoint only")
    else:
        logger.info("Running %d ingest source(s): %s", len(sources), list(sources))

    app.state.sources = sources


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup/shutdown lifecycle."""
    # Import models to register them with SQLModel before init_db()
    import campusnav.directory.models  # noqa: F401
    import campusnav.location.models  # noqa: F401

    database.init_db()
    logger.info("Database initialized")

    cfg = load_config()
    app.state.ingest = IngestionService(DetectionValidator.from_settings(cfg))
    await _start_sources(app, cfg)

    yield

    for source in app.state.sources.values():
        await source.stop()
    if app.state.sources:
        logger.info("All ingest sources stopped")


app = FastAPI(
    title="CampusNav",
    description="BLE faculty presence tracking: last known room per faculty member",
    version="0.1.0",
    lifespan=lifespan,
)


# Register routers
from campusnav.api.routes import router as api_router  # noqa: E402

app.include_router(api_router)


@app.get("/health")
def health() -> dict[str, Any]:
    sources: dict[str, BaseIngestSource] = getattr(app.state, "sources", {})
    mqtt = sources.get("mqtt")
    ingest: IngestionService | None = getattr(app.state, "ingest", None)
    return {
        "status": "ok",
        "database": database.is_db_connected(),
        "mqtt": mqtt.is_connected if mqtt else False,
        "ingest": ingest.stats() if ingest else {},
    }


def main() -> None:
    import uvicorn

    logger.info("Starting CampusNav on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
