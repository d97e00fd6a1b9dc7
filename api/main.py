import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from auth import router as auth_router
from blog import router as blog_router
from core import db
from core.config import Settings
from core.log import configure_logging
from portfolio import router as portfolio_router
from repos import router as repos_router

logger = logging.getLogger("portfolio_api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize the DB pool once per process.
    await db.init_pool(app.state.settings.database_url)
    try:
        yield
    finally:
        await db.close_pool()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings)

    app = FastAPI(title="portfolio-api", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            level,
            "request method=%s path=%s status=%s duration_ms=%.1f",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    app.include_router(auth_router.router, tags=["auth"])
    app.include_router(repos_router.router, tags=["repos"])
    app.include_router(blog_router.router, tags=["blog"])
    app.include_router(portfolio_router.router, tags=["portfolio"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/")
    def root() -> dict:
        return {
            "message": "portfolio-api",
            "endpoints": {
                "admin": "/admin",
                "repos": "/api/repos",
                "github": "/api/github",
                "blog": "/api/blog",
                "portfolio": "/api/portfolio",
            },
            "github_configured": settings.github_configured,
        }

    return app


app = create_app()
