from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from ...dependencies import get_db

router = APIRouter(prefix="/health", tags=["health"])

@router.get("/live")
def live():
    return {"status": "ok"}

@router.get("/ready")
def ready(db: Session = Depends(get_db)):
    """Listo si la base de datos responde."""
    db.execute(text("SELECT 1"))
    return {"status": "ok", "database": "ok"}
