"""FastAPI edge gateway for the LLM relay."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from .auth import authorize
from .config import LOG_LEVEL, GatewaySettings
from .errors import AuthError, GatewayError
from .policy import ModelAccessPolicy, is_premium_header
from .proxy import apply_cors, build_upstream_url, forward, parse_upstream_url

logger = logging.getLogger(__name__)


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def create_app(
    settings: Optional[GatewaySettings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        settings: Gateway configuration; read from the environment when omitted
        http_client: Client used to reach the upstreams. When omitted the app
            creates one and closes it on shutdown.
    """
    settings = settings or GatewaySettings.from_env()
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=settings.upstream_timeout)
    policy = ModelAccessPolicy(settings.models)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_client:
            await client.aclose()

    app = FastAPI(title="LLM Relay Gateway", lifespan=lifespan)
    app.state.settings = settings
    app.state.http_client = client

    @app.middleware("http")
    async def cors_overlay(request: Request, call_next):
        """Answer preflights directly and stamp CORS headers on every response."""
        if request.method == "OPTIONS":
            response = Response(status_code=204)
        else:
            response = await call_next(request)
        apply_cors(response.headers)
        return response

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    async def require_signature(request: Request) -> None:
        result = authorize(
            request.headers,
            request.url.path,
            settings.secret,
            max_skew=settings.max_clock_skew,
        )
        if not result.valid:
            logger.warning("AuthGate | rejected path=%s reason=%s", request.url.path, result.reason)
            raise AuthError(result.reason)

    @app.get("/models")
    async def list_models(premium: str = "0"):
        """Public model listing; premium models only with premium=1."""
        return {"models": policy.list_models(include_premium=premium == "1")}

    @app.get("/voices")
    async def list_voices():
        """Public voice listing for text-to-speech."""
        return {"voices": [v.model_dump(by_alias=True) for v in settings.voices]}

    @app.post("/tts", dependencies=[Depends(require_signature)])
    async def text_to_speech(request: Request):
        return await forward(
            client,
            request,
            parse_upstream_url(settings.tts_upstream_url),
            settings.api_key_header,
            settings.tts_upstream_api_key,
            settings.edge_header_prefixes,
        )

    @app.post("/{model}/chat/completions", dependencies=[Depends(require_signature)])
    async def chat_completions(model: str, request: Request):
        decision = policy.check_access(model, is_premium_header(request.headers.get("X-Premium")))
        if not decision.allowed:
            logger.info("ModelAccessPolicy | rejected model=%s kind=%s", model, decision.kind)
        decision.raise_for_rejection(model)

        target = build_upstream_url(
            settings.chat_upstream_url,
            request.url.path,
            request.query_params.multi_items(),
            api_version=settings.api_version,
        )
        return await forward(
            client,
            request,
            target,
            settings.api_key_header,
            settings.chat_upstream_api_key,
            settings.edge_header_prefixes,
        )

    return app


app = create_app()


def run():
    import uvicorn

    configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=8787)


if __name__ == "__main__":
    run()
