from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from admin_analytics.db.session import get_db
from admin_analytics.schemas.health import HealthResponse
from admin_analytics.services import health as health_service

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["system"])
def health(db: Session = Depends(get_db)) -> HealthResponse:
    database_ok = health_service.check_database(db)
    status = "ok" if database_ok else "degraded"
    return HealthResponse(status=status, database=database_ok)
