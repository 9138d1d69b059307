import os

import structlog
from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from .config import settings, DEFAULT_JWT_SECRET
from .db import Base, engine, get_db
from .errors import install_exception_handlers
from .logging import setup_logging, RequestIdMiddleware
from .auth.router import router as auth_router
from .routes.users import router as users_router
from .routes.assets import router as assets_router
from .routes.pm import router as pm_router
from .routes.breakdowns import router as breakdowns_router
from .routes.spares import router as spares_router
from .routes.utilities import router as utilities_router
from .routes.dashboard import router as dashboard_router


def create_app() -> FastAPI:
    setup_logging()
    log = structlog.get_logger()
    app = FastAPI(title=settings.app_name)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    install_exception_handlers(app)

    # Routers
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(assets_router)
    app.include_router(pm_router)
    app.include_router(breakdowns_router)
    app.include_router(spares_router)
    app.include_router(utilities_router)
    app.include_router(dashboard_router)

    # Metrics
    if settings.enable_metrics:
        Instrumentator().instrument(app).expose(app)

    @app.get("/")
    def health(db: Session = Depends(get_db)):
        db.execute(text("SELECT 1"))
        return {"message": f"{settings.app_name} is running", "status": "success", "database": "connected"}

    @app.on_event("startup")
    def _startup():
        log.info("startup_begin", environment=settings.environment, port=settings.port)
        if settings.jwt_secret == DEFAULT_JWT_SECRET:
            log.warning("startup_default_jwt_secret", hint="set JWT_SECRET before deploying")
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
            log.info("startup_tables_verified", tables=len(Base.metadata.tables))

    return app


app = create_app()
