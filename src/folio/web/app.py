"""FastAPI application exposing books, their pages and their analyses."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncIterator

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from folio.analysis.client import AnalysisClient, AnalysisKind, AnalysisRequestError
from folio.analysis.relay import encode_event
from folio.analysis.service import AnalysisService
from folio.catalog.fetcher import CatalogFetcher, CatalogRequestError
from folio.catalog.ingestor import BookIngestor, BookNotFoundError
from folio.storage.repository import BookConflictError, LibraryRepository
from folio.web.config import AppSettings, DeliveryMode

logger = logging.getLogger(__name__)

router = APIRouter()


def _ingestor(request: Request) -> BookIngestor:
    return request.app.state.ingestor


def _analysis(request: Request) -> AnalysisService:
    return request.app.state.analysis


async def _sse(segments: AsyncIterator[str]) -> AsyncIterator[str]:
    async for segment in segments:
        yield encode_event(segment)


@router.get("/")
async def index() -> dict[str, str]:
    return {"message": "Welcome to folio."}


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/books")
async def list_books(request: Request) -> list[dict[str, object]]:
    books = await _ingestor(request).list_books()
    return [book.to_dict() for book in books]


@router.get("/books/{external_id}")
async def get_book(request: Request, external_id: str) -> dict[str, object]:
    book = await _ingestor(request).get_or_ingest(external_id)
    return book.to_dict()


@router.post("/books/{external_id}", status_code=201)
async def create_book(request: Request, external_id: str) -> dict[str, object]:
    book = await _ingestor(request).ingest(external_id)
    return book.to_dict()


@router.delete("/books/{external_id}", status_code=204)
async def delete_book(request: Request, external_id: str) -> Response:
    await _ingestor(request).delete_book(external_id)
    return Response(status_code=204)


@router.get("/books/{external_id}/content")
async def get_content(
    request: Request,
    external_id: str,
    page: int | None = Query(default=None, ge=1),
) -> dict[str, object]:
    chunks = await _ingestor(request).get_pages(external_id, page)
    return {
        "external_id": external_id,
        "page": page,
        "chunks": [{"order": chunk.order, "text": chunk.text} for chunk in chunks],
    }


@router.get("/books/{external_id}/analysis/{kind}")
async def get_analysis(request: Request, external_id: str, kind: AnalysisKind) -> Response:
    settings: AppSettings = request.app.state.settings
    service = _analysis(request)

    if settings.delivery_mode is DeliveryMode.BUFFERED:
        text = await service.analyze(external_id, kind)
        return JSONResponse({"external_id": external_id, "kind": kind.value, "analysis": text})

    segments = await service.stream(external_id, kind)
    return StreamingResponse(
        _sse(segments),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"error": str(exc)})

    return handler


def build_app(
    settings: AppSettings,
    *,
    repository: LibraryRepository | None = None,
    fetcher: CatalogFetcher | None = None,
    analysis_client: AnalysisClient | None = None,
) -> FastAPI:
    """Build the app with its collaborators; the lifespan closes them on shutdown."""

    repository = repository or LibraryRepository(settings.db_path)
    fetcher = fetcher or CatalogFetcher(settings.catalog_base_url, timeout_seconds=settings.http_timeout_seconds)
    analysis_client = analysis_client or AnalysisClient(settings.provider)

    ingestor = BookIngestor(repository, fetcher, chunk_max_chars=settings.chunk_max_chars)
    analysis = AnalysisService(repository, analysis_client, min_flush_chars=settings.min_flush_chars)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("folio started (delivery=%s, db=%s)", settings.delivery_mode.value, settings.db_path)
        yield
        await analysis.drain()
        await fetcher.aclose()
        await analysis_client.aclose()
        repository.close()
        logger.info("folio stopped cleanly.")

    app = FastAPI(title="folio", lifespan=lifespan)
    app.state.settings = settings
    app.state.repository = repository
    app.state.ingestor = ingestor
    app.state.analysis = analysis

    app.add_exception_handler(BookNotFoundError, _error_handler(404))
    app.add_exception_handler(BookConflictError, _error_handler(409))
    app.add_exception_handler(CatalogRequestError, _error_handler(502))
    app.add_exception_handler(AnalysisRequestError, _error_handler(502))
    app.add_exception_handler(ValueError, _error_handler(400))

    app.include_router(router)
    return app
