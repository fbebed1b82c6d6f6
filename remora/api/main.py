"""
HTTP API for the hybrid memory store, with the MCP tools mounted at /mcp.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .schemas import (
    AddMemoryRequest,
    AddMemoryResponse,
    AddTextMemoryRequest,
    DeleteResponse,
    ErrorResponse,
    HealthResponse,
    MemoryResult,
    SearchRequest,
    SearchResponse,
    SearchTextRequest,
    ValidationErrorResponse,
    ValidationFieldError,
)
from .tools import build_mcp_server
from ..core.bootstrap import rebuild_vector_index
from ..core.config import (
    MAX_TOP_K,
    VERSION,
    debug_enabled,
    mcp_enabled,
    rebuild_on_startup,
    validate_config,
)
from ..core.db import health_check, init_db
from ..core.store import EmbeddingUnavailableError, MemoryStore, MemoryValidationError
from ..util.logging import logger

router = APIRouter()


def get_store(request: Request) -> MemoryStore:
    return request.app.state.store


def _clamp_top_k(top_k: int) -> int:
    return max(1, min(top_k, MAX_TOP_K))


def _search_response(records) -> SearchResponse:
    return SearchResponse(memories=[MemoryResult(**record.to_public_dict()) for record in records])


@router.get("/health", response_model=HealthResponse)
def health_check_endpoint(store: MemoryStore = Depends(get_store)):
    """Check system health."""
    db_health = health_check()
    memory_count = store.repository.get_memory_count() if db_health else 0

    return HealthResponse(
        status="healthy" if db_health else "unhealthy",
        version=VERSION,
        db_health=db_health,
        memory_count=memory_count,
        indexed_count=len(store.index),
    )


@router.post("/v1/memories", response_model=AddMemoryResponse)
def add_memory_endpoint(request: AddMemoryRequest, store: MemoryStore = Depends(get_store)):
    """Store a memory with a client-generated embedding."""
    memory_id = store.add(
        user_id=request.user_id,
        scope=request.scope,
        payload=request.payload,
        embedding=request.embedding,
        agent_id=request.agent_id,
        embedding_model=request.embedding_model,
    )
    return AddMemoryResponse(memory_id=memory_id)


@router.post("/v1/search", response_model=SearchResponse)
def search_endpoint(request: SearchRequest, store: MemoryStore = Depends(get_store)):
    """Search by query embedding. Results are in similarity order, scope-filtered."""
    records = store.search(
        request.user_id,
        request.query_embedding,
        top_k=_clamp_top_k(request.top_k),
        agent_id=request.agent_id,
    )
    return _search_response(records)


@router.delete("/v1/memories/{memory_id}", response_model=DeleteResponse)
def delete_memory_endpoint(memory_id: str, user_id: Optional[str] = None, store: MemoryStore = Depends(get_store)):
    """Hard-delete a memory owned by user_id. Unknown ids still report deleted."""
    if not user_id:
        raise MemoryValidationError("user_id required in query")

    store.delete(user_id, memory_id)
    return DeleteResponse(deleted=True)


@router.post("/v1/memories/text", response_model=AddMemoryResponse)
def add_text_memory_endpoint(request: AddTextMemoryRequest, store: MemoryStore = Depends(get_store)):
    """Store a fact; the server computes its embedding."""
    memory_id = store.add_text(request.user_id, request.scope, request.text, agent_id=request.agent_id)
    return AddMemoryResponse(memory_id=memory_id)


@router.post("/v1/search/text", response_model=SearchResponse)
def search_text_endpoint(request: SearchTextRequest, store: MemoryStore = Depends(get_store)):
    """Search by query text; the server computes the query embedding."""
    records = store.search_text(
        request.user_id,
        request.query_text,
        top_k=_clamp_top_k(request.top_k),
        agent_id=request.agent_id,
    )
    return _search_response(records)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests as client errors (400)."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())[1:]) or "body"
        if error.get("type") == "missing":
            message = f"Missing {field}"
        else:
            message = str(error.get("msg", "invalid value"))
        errors.append(ValidationFieldError(field=field, message=message))

    message = errors[0].message if errors else "Invalid request"
    content = ValidationErrorResponse(message=message, errors=errors)
    return JSONResponse(status_code=400, content=content.model_dump(mode="json"))


async def memory_validation_handler(request: Request, exc: MemoryValidationError):
    content = ValidationErrorResponse(message=str(exc))
    return JSONResponse(status_code=400, content=content.model_dump(mode="json"))


async def embedding_unavailable_handler(request: Request, exc: EmbeddingUnavailableError):
    content = ErrorResponse(error_type="EMBEDDING_DISABLED", message=str(exc))
    return JSONResponse(status_code=404, content=content.model_dump(mode="json"))


async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}")
    content = {"detail": "Internal server error"}
    if debug_enabled():
        content["debug"] = str(exc)
    return JSONResponse(status_code=500, content=content)


def create_app(store: Optional[MemoryStore] = None) -> FastAPI:
    """Build the application.

    The vector index is rebuilt from SQLite in the lifespan, before the
    first request is accepted.
    """
    store = store if store is not None else MemoryStore.from_config()
    mcp_server = build_mcp_server(store) if mcp_enabled() else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        for issue in validate_config():
            logger.warning(f"Config issue: {issue}")

        init_db()
        if rebuild_on_startup():
            rebuild_vector_index(store.index, store.repository)

        if mcp_server is not None:
            async with mcp_server.session_manager.run():
                yield
        else:
            yield

    app = FastAPI(
        title="Remora Memory API",
        version=VERSION,
        description="Shared agent memory: durable records with an in-memory similarity index",
        docs_url="/docs" if debug_enabled() else None,
        redoc_url="/redoc" if debug_enabled() else None,
        lifespan=lifespan,
    )
    app.state.store = store

    app.include_router(router)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(MemoryValidationError, memory_validation_handler)
    app.add_exception_handler(EmbeddingUnavailableError, embedding_unavailable_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    if mcp_server is not None:
        app.mount("/mcp", mcp_server.streamable_http_app())

    return app
