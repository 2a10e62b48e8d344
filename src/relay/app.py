"""HTTP routes that relay the dataset and chat replies to the frontend."""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Any, AsyncGenerator, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, Field

from . import __version__
from .completion import ConversationRequest, RetryingCompletionClient, RetryPolicy
from .config import RelaySettings
from .dataset import LocalDatasetSource, RemoteDatasetSource, TieredDataCache
from .errors import CompletionError, NoDataAvailable
from .providers import OpenAIChatProvider

logger = logging.getLogger(__name__)

router = APIRouter()

BUSY_REPLY = "The assistant is busy right now. Please try again in a moment."
REJECTED_REPLY = "The assistant could not process this request."


class ChatRequest(BaseModel):
    messages: Optional[list[dict[str, Any]]] = None
    message: Optional[str] = None
    history: list[dict[str, Any]] = Field(default_factory=list)

    def all_messages(self) -> list[dict[str, Any]]:
        if self.messages is not None:
            return self.messages
        messages = list(self.history)
        if self.message:
            messages.append({"role": "user", "content": self.message})
        return messages


class ChatResponse(BaseModel):
    reply: str


def build_dataset_cache(settings: RelaySettings) -> TieredDataCache:
    """Wire the remote and bundled sources described by the settings."""
    return TieredDataCache(
        remote=RemoteDatasetSource(url=settings.dataset_url, timeout=settings.dataset_timeout),
        local=LocalDatasetSource(settings.local_dataset),
    )


def build_completion_client(settings: RelaySettings) -> RetryingCompletionClient:
    """Wire the OpenAI provider and retry policy described by the settings."""
    provider = OpenAIChatProvider(
        api_key=settings.openai_api_key,
        default_model=settings.model,
        timeout=settings.completion_timeout,
        base_url=settings.openai_base_url,
    )
    policy = RetryPolicy(
        max_retries=settings.max_retries,
        base_delay=settings.backoff_base,
        max_delay=max(settings.backoff_max, settings.backoff_base),
    )
    return RetryingCompletionClient(
        provider,
        policy=policy,
        model=settings.model,
        max_history=settings.max_history,
        max_tokens=settings.max_tokens,
        timeout=settings.completion_timeout,
    )


@router.get("/api/master-csv")
async def master_csv(request: Request) -> Response:
    """Serve the dataset as CSV from the freshest available tier."""
    dataset: TieredDataCache = request.app.state.dataset
    record = await dataset.resolve()
    return Response(
        content=record.payload,
        media_type="text/csv",
        headers={
            "X-Data-Provenance": record.provenance.value,
            "X-Data-Stale": "true" if record.stale else "false",
        },
    )


@router.post("/api/chat", response_model=ChatResponse)
async def chat(request: Request, body: ChatRequest) -> ChatResponse:
    """Forward the conversation upstream and return a single reply."""
    settings: RelaySettings = request.app.state.settings
    completion: RetryingCompletionClient = request.app.state.completion

    try:
        conversation = ConversationRequest.from_messages(
            settings.system_prompt, body.all_messages()
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not conversation.turns:
        raise HTTPException(status_code=400, detail="No messages provided")

    reply = await completion.complete_request(conversation)
    return ChatResponse(reply=reply)


@router.get("/healthz")
async def healthz(request: Request) -> dict[str, Any]:
    """Liveness probe with component statistics."""
    return {
        "status": "ok",
        "version": __version__,
        "dataset": request.app.state.dataset.get_stats(),
        "completion": request.app.state.completion.get_stats(),
    }


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    """Readiness probe: ready once the dataset has been loaded from any tier."""
    ready = request.app.state.dataset.has_ever_succeeded
    return JSONResponse(status_code=200 if ready else 503, content={"ready": ready})


async def no_data_handler(request: Request, exc: NoDataAvailable) -> PlainTextResponse:
    logger.error(f"{request.url.path}: {exc}")
    return PlainTextResponse("Dataset temporarily unavailable", status_code=503)


async def completion_error_handler(request: Request, exc: CompletionError) -> JSONResponse:
    if exc.fatal:
        logger.error(f"{request.url.path}: upstream rejected completion: {exc}")
        return JSONResponse(status_code=502, content={"error": REJECTED_REPLY, "retryable": False})
    logger.warning(f"{request.url.path}: completion retries exhausted: {exc}")
    return JSONResponse(status_code=503, content={"reply": BUSY_REPLY, "retryable": True})


async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    if request.url.path.startswith("/api/"):
        return JSONResponse(
            status_code=500, content={"error": "Something went wrong on the server."}
        )
    return PlainTextResponse("Something went wrong.", status_code=500)


def create_app(
    settings: Optional[RelaySettings] = None,
    dataset: Optional[TieredDataCache] = None,
    completion: Optional[RetryingCompletionClient] = None,
    warm_on_startup: bool = True,
) -> FastAPI:
    """Build the application around injected components.

    Args:
        settings: Runtime settings. Defaults to ``RelaySettings.from_env()``.
        dataset: Dataset cache. Built from settings when omitted.
        completion: Completion client. Built from settings when omitted.
        warm_on_startup: Load the dataset in the background when the app starts.
    """
    settings = settings or RelaySettings.from_env()
    dataset = dataset or build_dataset_cache(settings)
    completion = completion or build_completion_client(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        warm_task = None
        if warm_on_startup:
            # Startup does not wait for the dataset; /readyz reports progress
            warm_task = asyncio.create_task(dataset.warm())
        logger.info(f"Relay server v{__version__} started")
        try:
            yield
        finally:
            if warm_task is not None and not warm_task.done():
                warm_task.cancel()
                with suppress(asyncio.CancelledError):
                    await warm_task
            await dataset.aclose()
            await completion.aclose()
            logger.info("Relay server stopped")

    app = FastAPI(title="relay", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.dataset = dataset
    app.state.completion = completion

    app.add_exception_handler(NoDataAvailable, no_data_handler)
    app.add_exception_handler(CompletionError, completion_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(router)
    return app
