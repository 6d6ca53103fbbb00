from __future__ import annotations

from datetime import date

from loguru import logger

from liftlog.core.errors import MealSaveError
from liftlog.engine.optimistic import apply_optimistically
from liftlog.engine.scoring import sum_macros
from liftlog.schemas.nutrition import MacroTotals, MealCreate, MealOut
from liftlog.schemas.session import new_id
from liftlog.storage.base import MealStore


class MealLog:
    """Meals for one user and day, updated optimistically.

    The in-memory list changes first so the UI reflects the action at once;
    if the write fails the change is rolled back.
    """

    def __init__(self, store: MealStore, user_id: str):
        self.store = store
        self.user_id = user_id
        self.day: date | None = None
        self.meals: list[MealOut] = []

    async def load(self, day: date) -> list[MealOut]:
        self.meals = await self.store.list_meals(self.user_id, day)
        self.day = day
        return self.meals

    def totals(self) -> MacroTotals:
        return MacroTotals(**sum_macros(item for meal in self.meals for item in meal.items))

    async def add_meal(self, payload: MealCreate) -> MealOut:
        meal = MealOut(
            id=new_id(),
            user_id=self.user_id,
            name=payload.name,
            date=payload.date,
            meal_type=payload.meal_type,
            eaten_at=payload.eaten_at,
            is_ai_estimated=payload.is_ai_estimated,
            items=payload.items,
            totals=MacroTotals(**sum_macros(payload.items)),
        )

        def apply() -> MealOut:
            if self.day is None or self.day == meal.date:
                self.meals.append(meal)
            return meal

        def revert() -> None:
            self.meals = [m for m in self.meals if m.id != meal.id]

        try:
            return await apply_optimistically(apply, lambda: self.store.insert_meal(meal), revert)
        except Exception as e:
            logger.warning(f"Meal {meal.id} not saved, rolled back: {e!r}")
            raise MealSaveError(meal.id) from e

    async def delete_meal(self, meal_id: str) -> bool:
        """Delete one of this user's meals. False if the store has no such meal for them."""
        index = next((i for i, m in enumerate(self.meals) if m.id == meal_id), None)
        removed = self.meals[index] if index is not None else None
        deleted = False

        def apply() -> None:
            if removed is not None:
                self.meals.remove(removed)

        def revert() -> None:
            if removed is not None:
                self.meals.insert(min(index, len(self.meals)), removed)

        async def write() -> None:
            nonlocal deleted
            deleted = await self.store.delete_meal(meal_id, self.user_id)

        try:
            await apply_optimistically(apply, write, revert)
        except Exception as e:
            logger.warning(f"Meal {meal_id} not deleted, restored: {e!r}")
            raise MealSaveError(meal_id) from e
        return deleted
