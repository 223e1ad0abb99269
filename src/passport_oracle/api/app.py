"""FastAPI app factory for the quick-score API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware

from passport_oracle import __version__
from passport_oracle.errors import ConfigurationError, NetworkError, ParseError, RuleDocumentError, SchemaError
from passport_oracle.services.quick_score import QuickScoreResponse, QuickScoreService

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["score"])


def get_quick_score_service() -> QuickScoreService:
    """Dependency provider returning a QuickScoreService instance."""

    return QuickScoreService()


@router.get("/quick-score", response_model=QuickScoreResponse, summary="Compute an owner's score without writing")
def quick_score(
    owner: str = Query(..., min_length=1),
    service: QuickScoreService = Depends(get_quick_score_service),
) -> QuickScoreResponse:
    try:
        return service.score(owner)
    except (SchemaError, RuleDocumentError, ConfigurationError) as exc:
        LOGGER.error("Scoring error: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Scoring unavailable") from exc
    except ParseError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except NetworkError as exc:
        LOGGER.error("Failed to fetch passports: %s", exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Ledger unavailable") from exc


@router.get("/health")
def health() -> dict:
    return {"status": "ok", "version": __version__}


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance.
    """
    app = FastAPI(title="Passport Quick Score API", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


# For uvicorn, expose `app` at module level
app = create_app()


def main() -> None:
    """Run the API with uvicorn using the configured host and port."""

    import uvicorn

    from passport_oracle.settings import get_settings

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    LOGGER.info("Quick Score API listening on http://%s:%s", settings.api.host, settings.api.port)
    uvicorn.run(app, host=settings.api.host, port=settings.api.port)


__all__ = ["app", "create_app", "main"]
