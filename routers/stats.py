from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.schemas import HospitalStats
from app.stats import hospital_stats

router = APIRouter()


@router.get("/hospital/{hospital_id}", response_model=HospitalStats)
def get_hospital_stats(hospital_id: int, db: Session = Depends(get_db)):
    return hospital_stats(db, hospital_id)
