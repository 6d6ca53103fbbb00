from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status

from liftlog.core.deps import get_meal_log
from liftlog.core.errors import MealSaveError
from liftlog.nutrition.meal_log import MealLog
from liftlog.schemas.nutrition import DayTotals, MealCreate, MealOut

router = APIRouter(prefix="/nutrition", tags=["nutrition"])


@router.post("/meals", response_model=MealOut, status_code=201)
async def create_meal(
    payload: MealCreate,
    log: MealLog = Depends(get_meal_log),
):
    try:
        return await log.add_meal(payload)
    except MealSaveError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


@router.get("/day", response_model=DayTotals)
async def get_day(
    date: date,
    log: MealLog = Depends(get_meal_log),
):
    meals = await log.load(date)
    return DayTotals(date=date, totals=log.totals(), meals=meals)


@router.delete("/meals/{meal_id}")
async def delete_meal(
    meal_id: str,
    log: MealLog = Depends(get_meal_log),
):
    try:
        deleted = await log.delete_meal(meal_id)
    except MealSaveError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Meal not found")
    return {"deleted": True, "meal_id": meal_id}
