"""FastAPI application exposing the sanctions assistant as a REST API."""

from __future__ import annotations

from collections.abc import AsyncIterator
from functools import lru_cache

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse, StreamingResponse

from sanctions_rag.assistant.orchestrator import QueryOrchestrator, QueryRequest

app = FastAPI(
    title="Sanctions RAG API",
    version="0.1.0",
    description="Streamed answers about the sanctions published by the SIMV.",
)


@lru_cache(maxsize=1)
def get_orchestrator() -> QueryOrchestrator:
    """Process-wide orchestrator; memory lives as long as the server."""
    return QueryOrchestrator.from_settings()


# ── Routes ────────────────────────────────────────────────────────────
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness check; the process is up."""
    return {"status": "ok"}


@app.get("/ready")
async def ready(orchestrator: QueryOrchestrator = Depends(get_orchestrator)) -> JSONResponse:
    """Readiness check; 503 until the vector store answers."""
    if await orchestrator.ready():
        return JSONResponse({"status": "ready"})
    return JSONResponse({"status": "unavailable"}, status_code=503)


@app.post("/chat")
async def chat(
    request: QueryRequest,
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Stream the answer as plain text, chunk by chunk."""

    async def body() -> AsyncIterator[str]:
        # Closing on exit also covers client disconnects.
        async with orchestrator.stream(request) as stream:
            async for chunk in stream:
                yield chunk

    return StreamingResponse(body(), media_type="text/plain; charset=utf-8")
