"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from fileconvert.api.responses import error_response
from fileconvert.api.routes import router
from fileconvert.config import SERVICE_NAME, SERVICE_VERSION, logger as config_logger
from fileconvert.conversion.service import get_conversion_service

logging.getLogger("uvicorn").setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    service = get_conversion_service()
    config_logger.info("Converter API started with %s conversions", len(service.registry))
    yield
    config_logger.info("Converter API shutting down")


app = FastAPI(
    title=SERVICE_NAME,
    description="Convert images, text and office documents between formats over multipart uploads.",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)


async def unhandled_error_handler(request: Request, exc: Exception):
    """Last resort: keep the JSON envelope and CORS headers on unexpected failures."""
    config_logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, f"Internal server error: {exc}", "INTERNAL_ERROR")


app.add_exception_handler(Exception, unhandled_error_handler)
app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    from fileconvert.config import HOST, PORT
    uvicorn.run("fileconvert.main:app", host=HOST, port=PORT, reload=True)
