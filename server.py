# server.py
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException
import httpx

from handler import handle
from logger import setup_logging
from models import VerifyBody
from settings import Settings, get_settings, warn_on_startup

logger = logging.getLogger(__name__)


async def _read_token(request: Request) -> Optional[str]:
    """Accept the token from a JSON or form-encoded body."""
    ct = (request.headers.get("content-type") or "").lower()
    data = None
    try:
        if "application/x-www-form-urlencoded" in ct or "multipart/form-data" in ct:
            form = await request.form()
            data = dict(form)
        else:
            data = await request.json()
    except (ValueError, StarletteHTTPException):
        # malformed JSON or multipart body
        return None
    if not isinstance(data, dict):
        return None
    try:
        return VerifyBody.model_validate(data).token
    except ValidationError:
        return None


def create_app(settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        warn_on_startup(settings)
        own_client = None
        if app.state.http_client is None:
            own_client = httpx.AsyncClient(timeout=settings.verify_timeout)
            app.state.http_client = own_client
        logger.info("relay started (environment=%s)", settings.environment)
        yield
        if own_client is not None:
            await own_client.aclose()
            app.state.http_client = None
        logger.info("relay stopped")

    app = FastAPI(title="Token Relay", lifespan=lifespan)
    app.state.settings = settings
    app.state.http_client = http_client

    limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
    app.state.limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limited(request: Request, exc: RateLimitExceeded):
        logger.warning("rate limit hit for %s: %s", get_remote_address(request), exc.detail)
        return JSONResponse({"success": False, "error": "rate_limited"}, status_code=429)

    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        logger.error("unhandled error on %s", request.url.path, exc_info=exc)
        return JSONResponse({"success": False, "error": "internal_error"}, status_code=500)

    @app.get("/")
    async def root():
        return PlainTextResponse("Backend is running.")

    @app.get("/health")
    async def health():
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    # quiet browser icon fetches
    @app.get("/favicon.ico")
    async def favicon_ico():
        return Response(status_code=204)

    @app.post("/verify-token")
    @limiter.limit(settings.rate_limit)
    async def verify_token(request: Request):
        token = await _read_token(request)
        remote_ip = request.client.host if getattr(request, "client", None) else None
        status, body = await handle(
            token,
            settings,
            client=request.app.state.http_client,
            remote_ip=remote_ip,
        )
        return JSONResponse(body, status_code=status)

    return app


load_dotenv()
settings = get_settings()
setup_logging(level=settings.log_level, json_output=settings.is_production)
app = create_app(settings)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=settings.port)
