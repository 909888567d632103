import asyncio
from contextlib import asynccontextmanager, suppress
from typing import AsyncIterator, Optional, TYPE_CHECKING

from fastapi import FastAPI
from structlog.stdlib import BoundLogger

from infrastructure.logging.setup import configure_logging
from infrastructure.services import get_settings
from modules.localization.context import LocalizationContext, build_context
from modules.localization.service import LocalizationService

if TYPE_CHECKING:
    from infrastructure.configuration import Settings


def _get_logger(settings: "Settings") -> BoundLogger:
    return configure_logging(settings=settings)


def _list_configs(settings: "Settings", logger: BoundLogger) -> None:
    config_settings: dict[str, list[object]] = {"settings": []}

    for key, value in settings.model_dump().items():
        if isinstance(value, dict):
            config_settings[key] = list(value.keys())
        else:
            config_settings["settings"].append({key: value})

    logger.info("configuration_initialized", base_settings=config_settings["settings"])
    for key, value in config_settings.items():
        if key != "settings":
            logger.info("configuration_loaded", config_setting=key, keys=value)


async def _prepare_languages(
    context: LocalizationContext, settings: "Settings", logger: BoundLogger
) -> None:
    if not settings.server.ENSURE_SINGLE_DEFAULT_ON_STARTUP:
        return
    default = await context.languages.ensure_single_default()
    logger.info("default_language_checked", default_language=default)


async def _seed_ui_catalog(context: LocalizationContext, logger: BoundLogger) -> None:
    try:
        seeded = await context.seed_ui_catalog()
    except (OSError, ValueError) as exc:
        logger.error("ui_catalog_seed_failed", error=str(exc))
        return
    if seeded:
        logger.info("ui_catalog_loaded", entries=seeded)


async def _run_translation_worker(
    context: LocalizationContext, interval: float, logger: BoundLogger
) -> None:
    """Drain the auto-translation queue until cancelled."""
    logger.info("translation_worker_started", interval_seconds=interval)
    while True:
        try:
            stats = await context.worker.process_batch()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("translation_worker_batch_failed", error=str(exc), exc_info=True)
            stats = {"processed": 0}
        if not stats.get("processed"):
            await asyncio.sleep(interval)


def _start_translation_worker(
    context: LocalizationContext, settings: "Settings", logger: BoundLogger
) -> Optional[asyncio.Task]:
    if not settings.server.TRANSLATION_WORKER_ENABLED:
        logger.info("translation_worker_disabled")
        return None
    return asyncio.create_task(
        _run_translation_worker(
            context, settings.server.TRANSLATION_WORKER_INTERVAL_SECONDS, logger
        ),
        name="localization-auto-translate",
    )


async def _stop_translation_worker(task: Optional[asyncio.Task]) -> None:
    if task is None:
        return
    task.cancel()
    with suppress(asyncio.CancelledError):
        await task


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = getattr(app.state, "settings", None) or get_settings()
    logger = _get_logger(settings)

    app.state.settings = settings
    app.state.logger = logger

    logger.info("application_startup")
    _list_configs(settings, logger)

    # a context placed on the app beforehand (tests) is used as is
    context = getattr(app.state, "localization", None) or build_context(settings)
    app.state.localization = context
    app.state.localization_service = LocalizationService(context)

    await _prepare_languages(context, settings, logger)
    await _seed_ui_catalog(context, logger)
    worker_task = _start_translation_worker(context, settings, logger)
    app.state.translation_worker = worker_task

    yield

    logger.info("application_shutdown")

    await _stop_translation_worker(worker_task)
    await context.aclose()
