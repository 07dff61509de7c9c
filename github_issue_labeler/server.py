"""HTTP surface: inference, similarity search and the GitHub webhook."""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse

from . import __version__
from .errors import ForbiddenError, LabelerError, NotFoundError
from .search import IssueSearcher
from .service import LabelerService
from .webhook import IssueEvent, handle_issue_event

logger = logging.getLogger(__name__)

# Deadline for one inference request, retries included.
INFER_TIMEOUT = 60.0


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    service: LabelerService,
    searcher: IssueSearcher,
    infer_timeout: float | None = INFER_TIMEOUT,
) -> FastAPI:
    """Build the FastAPI application around a labeler and a searcher."""
    app = FastAPI(
        title="GitHub Issue Labeler",
        description="Labels GitHub issues and searches for similar ones",
        version=__version__,
    )

    @app.exception_handler(ForbiddenError)
    async def forbidden_handler(request: Request, exc: ForbiddenError) -> JSONResponse:
        return _error(403, str(exc))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(LabelerError)
    async def labeler_error_handler(request: Request, exc: LabelerError) -> JSONResponse:
        logger.error("Server error on %s: %s", request.url.path, exc)
        return _error(500, str(exc))

    @app.exception_handler(TimeoutError)
    async def timeout_handler(request: Request, exc: TimeoutError) -> JSONResponse:
        logger.error("Timed out serving %s", request.url.path)
        return _error(500, "deadline exceeded")

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unexpected error on %s: %s", request.url.path, exc, exc_info=exc)
        return _error(500, str(exc))

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "version": __version__}

    @app.get("/infer")
    async def infer(
        install_id: Optional[str] = Query(None),
        user: Optional[str] = Query(None, description="Repository owner"),
        repo: Optional[str] = Query(None),
        issue: Optional[str] = Query(None, description="Issue number"),
        test_mode: bool = Query(False, description="Hide the issue's current labels"),
    ):
        """Infer labels for an issue without applying them"""
        if not (install_id and user and repo and issue):
            return _error(400, "install_id, user, repo, and issue are required")
        try:
            issue_number = int(issue)
        except ValueError:
            return _error(400, "issue must be a number")

        result = await service.infer(
            install_id, user, repo, issue_number, test_mode=test_mode, timeout=infer_timeout
        )
        return result.model_dump()

    @app.get("/search")
    async def search(
        owner: Optional[str] = Query(None),
        repo: Optional[str] = Query(None),
        q: Optional[str] = Query(None, description="Free text query"),
    ):
        """Rank a repository's open issues by similarity to a query"""
        if not owner:
            return _error(400, "missing owner")
        if not repo:
            return _error(400, "missing repo")
        if not q:
            return _error(400, "missing q")

        result = await searcher.search(owner, repo, q)
        return result.model_dump(mode="json")

    @app.post("/webhook")
    async def webhook(
        request: Request,
        x_github_event: Optional[str] = Header(None),
    ):
        """Receive GitHub webhook deliveries"""
        if x_github_event != "issues":
            return {"message": f"ignored event {x_github_event}"}

        try:
            payload: dict[str, Any] = await request.json()
            event = IssueEvent.from_payload(payload)
        except (KeyError, TypeError, ValueError) as e:
            return _error(400, f"malformed issues event: {e}")

        outcome = await handle_issue_event(service, event, timeout=infer_timeout)
        return outcome.model_dump()

    return app
