"""Health check endpoint: database connectivity and revocation store size."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse
from app.services.revocation import RevocationStore, get_revocation_store

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(
    db: Annotated[Session, Depends(get_db)],
    revocations: Annotated[RevocationStore, Depends(get_revocation_store)],
) -> HealthResponse:
    """Used by load balancers and monitoring. The revocation count is per process."""
    return HealthResponse(
        environment=settings.APP_ENV,
        database="connected" if check_db_connected(db) else "disconnected",
        revoked_tokens=len(revocations),
    )
