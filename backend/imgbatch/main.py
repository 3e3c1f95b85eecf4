"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from imgbatch.api.routes import close_remote_fetcher, router
from imgbatch.config import CORS_ORIGINS, logger as config_logger
from imgbatch.conversion.service import get_conversion_service, shutdown_conversion_service

logging.getLogger("uvicorn").setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    get_conversion_service()
    config_logger.info("ImgBatch API started")
    yield
    await close_remote_fetcher()
    shutdown_conversion_service()
    config_logger.info("ImgBatch API shutting down")


app = FastAPI(
    title="ImgBatch API",
    description="Collect images from files and URLs, convert them to PNG/JPEG/WEBP and download a zip.",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if CORS_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Session-ID", "Content-Disposition"],
)


async def session_header_middleware(request, call_next):
    """Set X-Session-ID on response when the session was created by the dependency."""
    response = await call_next(request)
    if hasattr(request.state, "session_id"):
        response.headers["X-Session-ID"] = request.state.session_id
    return response


app.middleware("http")(session_header_middleware)
app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    from imgbatch.config import HOST, PORT
    uvicorn.run("imgbatch.main:app", host=HOST, port=PORT, reload=True)
