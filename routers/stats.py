from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from crud import stats as stats_crud
from database import get_db
from schemas import BadgesOut, StatsOut

router = APIRouter()


@router.get("", response_model=StatsOut)
def get_stats(db: Session = Depends(get_db)):
    return stats_crud.get_stats(db)


@router.get("/badges/{account_id}", response_model=BadgesOut)
def get_account_badges(account_id: str, db: Session = Depends(get_db)):
    return stats_crud.get_account_badges(db, account_id)
