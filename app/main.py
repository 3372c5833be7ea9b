# app/main.py
"""
FastAPI application relaying chat turns to the completion provider.

Flow per /ask request:
1. Accept prompt + userId.
2. Hand them to the SessionService (load history, select context,
   call the provider, persist the turn).
3. Return the reply, or a generic error body if the cycle failed.

Routes are served at the root and under /api.

Run:
    uvicorn app.main:app --reload
"""

import re
from contextlib import ExitStack, asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from app.completion import CompletionOrchestrator, build_client
from app.config import Settings, get_settings
from app.errors import AskError, StorageError
from app.logging_config import configure_logging
from app.models import Message
from app.service import SessionService
from app.sessions import SessionStore
import logging

logger = logging.getLogger(__name__)

ASK_FAILED = "AI request failed"
HISTORY_FAILED = "Failed to load chat history"


class AskRequest(BaseModel):
    """
    Input schema for the /ask endpoint.

    Attributes
    ----------
    prompt : str
        Natural language user message.
    user_id : str
        Client-supplied identifier (JSON key `userId`); trusted as given.
    """
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(..., description="User input text.")
    user_id: str = Field(..., alias="userId", description="User identifier.")


class AskResponse(BaseModel):
    reply: str


class HistoryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", description="User identifier.")


class HistoryResponse(BaseModel):
    messages: List[Message] = []


def build_origin_regex(origins: List[str]) -> Optional[str]:
    """
    Compile wildcard origins into one regex for CORSMiddleware.

    Parameters
    ----------
    origins : list[str]
        Allowed origins; entries containing `*` are patterns
        (e.g. "https://app-*.vercel.app").

    Returns
    -------
    str or None
        Anchored alternation of the patterns, or None when every entry
        is an exact origin.
    """
    patterns = [
        ".*".join(re.escape(part) for part in origin.split("*"))
        for origin in origins
        if "*" in origin
    ]
    if not patterns:
        return None
    return "^(?:" + "|".join(patterns) + ")$"


def get_service(request: Request) -> SessionService:
    return request.app.state.service


router = APIRouter()


@router.post("/ask", response_model=AskResponse)
def ask(req: AskRequest, request: Request):
    """
    Run one conversation turn for a user.

    Parameters
    ----------
    req : AskRequest
        Prompt and user identifier.

    Returns
    -------
    AskResponse
        Assistant reply. Failures are turned into a 500 by the AskError
        handler.
    """
    if not req.prompt.strip():
        raise HTTPException(status_code=400, detail="Prompt cannot be empty.")

    logger.info("New prompt user=%s len=%d", req.user_id, len(req.prompt))
    reply = get_service(request).ask(req.user_id, req.prompt)
    return AskResponse(reply=reply)


@router.post("/history", response_model=HistoryResponse)
def history(req: HistoryRequest, request: Request):
    try:
        messages = get_service(request).history(req.user_id)
    except StorageError:
        logger.exception("History lookup failed user=%s", req.user_id)
        return JSONResponse(status_code=500, content={"error": HISTORY_FAILED})
    return HistoryResponse(messages=messages)


@router.get("/health")
def health():
    return {"status": "OK", "message": "Server is running"}


async def ask_error_handler(request: Request, exc: AskError):
    logger.error("Ask cycle failed: %s", exc, exc_info=exc.cause)
    return JSONResponse(status_code=500, content={"error": ASK_FAILED})


def create_app(settings: Optional[Settings] = None,
               service: Optional[SessionService] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Parameters
    ----------
    settings : Settings, optional
        Defaults to `get_settings()`.
    service : SessionService, optional
        Pre-built service (tests). When omitted, the lifespan opens the
        session store and provider client at startup and closes them on
        shutdown.

    Returns
    -------
    FastAPI
        Configured application.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.service is not None:
            yield
            return

        with ExitStack() as resources:
            store = SessionStore(settings.store_path)
            resources.callback(store.close)
            client = build_client(settings.anthropic_api_key, settings.provider_timeout)
            resources.callback(client.close)
            orchestrator = CompletionOrchestrator(
                client,
                model=settings.anthropic_model,
                system_prompt=settings.system_prompt,
                max_tokens=settings.max_tokens,
            )
            app.state.service = SessionService(store, orchestrator, window_size=settings.window_size)
            logger.info("Service ready model=%s window=%d", settings.anthropic_model, settings.window_size)
            try:
                yield
            finally:
                app.state.service = None

    app = FastAPI(title="Chat Relay", version="1.0.0", lifespan=lifespan)
    app.state.service = service

    exact_origins = [o for o in settings.allowed_origins if "*" not in o]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=exact_origins,
        allow_origin_regex=build_origin_regex(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_exception_handler(AskError, ask_error_handler)

    app.include_router(router)
    app.include_router(router, prefix="/api")
    return app


app = create_app()


def main() -> None:
    settings = get_settings()
    logger.info("Server starting on port %d", settings.port)
    uvicorn.run("app.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
