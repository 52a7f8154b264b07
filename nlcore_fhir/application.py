import logging

from typing import Any

from fastapi import FastAPI
import uvicorn

from nlcore_fhir.config import get_config
from nlcore_fhir.container import get_database, setup_container
from nlcore_fhir.exceptions import FhirException
from nlcore_fhir.routers.default import router as default_router
from nlcore_fhir.routers.fhir_router import router as fhir_router
from nlcore_fhir.routers.health import router as health_router
from nlcore_fhir.routers.openapi_router import router as openapi_router, swagger_ui
from nlcore_fhir.services.fhir.response import fhir_exception_handler
from nlcore_fhir.stats import StatsdMiddleware, setup_stats

logger = logging.getLogger(__name__)


def get_uvicorn_params() -> dict[str, Any]:
    config = get_config()
    kwargs = {
        "host": config.uvicorn.host,
        "port": config.uvicorn.port,
        "reload": config.uvicorn.reload,
        "reload_delay": config.uvicorn.reload_delay,
        "reload_dirs": config.uvicorn.reload_dirs,
        "factory": True,
    }
    if (
        config.uvicorn.use_ssl
        and config.uvicorn.ssl_base_dir is not None
        and config.uvicorn.ssl_cert_file is not None
        and config.uvicorn.ssl_key_file is not None
    ):
        kwargs["ssl_keyfile"] = (
            config.uvicorn.ssl_base_dir + "/" + config.uvicorn.ssl_key_file
        )
        kwargs["ssl_certfile"] = (
            config.uvicorn.ssl_base_dir + "/" + config.uvicorn.ssl_cert_file
        )

    return kwargs


def run() -> None:
    uvicorn.run("nlcore_fhir.application:create_fastapi_app", **get_uvicorn_params())


def create_fastapi_app() -> FastAPI:
    if get_config().stats.enabled:
        setup_stats()

    application_init()
    return setup_fastapi()


def application_init() -> None:
    setup_logging()
    setup_container()
    setup_database()


def setup_logging() -> None:
    loglevel = logging.getLevelName(get_config().app.loglevel.upper())

    if isinstance(loglevel, str):
        raise ValueError(f"Invalid loglevel {loglevel.upper()}")
    logging.basicConfig(
        level=loglevel,
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )


def setup_database() -> None:
    config = get_config()
    db = get_database()

    if config.database.create_tables:
        logger.info("Creating database tables")
        db.generate_tables()
    if config.database.apply_rls:
        db.apply_row_level_security()


def setup_fastapi() -> FastAPI:
    config = get_config()

    # The FastAPI generated docs describe the raw routes, /docs shows the
    # FHIR OpenAPI document instead
    fastapi = FastAPI(
        title=config.fhir.server_name,
        docs_url=None,
        redoc_url=None,
    )

    routers = [
        default_router,
        health_router,
        fhir_router,
        openapi_router,
    ]
    for router in routers:
        fastapi.include_router(router)

    if config.uvicorn.swagger_enabled:
        fastapi.add_api_route(config.uvicorn.docs_url, swagger_ui, include_in_schema=False)

    fastapi.add_exception_handler(FhirException, fhir_exception_handler)  # type: ignore[arg-type]

    stats_conf = config.stats
    if stats_conf.enabled:
        fastapi.add_middleware(StatsdMiddleware, module_name=stats_conf.module_name or "nlcore_fhir")

    return fastapi
