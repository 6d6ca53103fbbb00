from __future__ import annotations

from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from liftlog.engine.scoring import sum_macros
from liftlog.models.meal import Meal, MealItem
from liftlog.schemas.nutrition import MacroTotals, MealItemIn, MealOut


class SqlAlchemyMealStore:
    def __init__(self, sessionmaker: async_sessionmaker):
        self.sessionmaker = sessionmaker

    async def insert_meal(self, meal: MealOut) -> None:
        async with self.sessionmaker() as db:
            db.add(
                Meal(
                    id=meal.id,
                    user_id=meal.user_id,
                    date=meal.date,
                    eaten_at=meal.eaten_at,
                    meal_type=meal.meal_type,
                    name=meal.name,
                    is_ai_estimated=meal.is_ai_estimated,
                )
            )
            await db.flush()
            db.add_all(
                MealItem(meal_id=meal.id, **item.model_dump())
                for item in meal.items
            )
            await db.commit()

    async def delete_meal(self, meal_id: str, user_id: str) -> bool:
        """Delete one of ``user_id``'s meals; False if they have no such meal."""
        async with self.sessionmaker() as db:
            res = await db.execute(select(Meal.id).where(Meal.id == meal_id, Meal.user_id == user_id))
            if res.scalar_one_or_none() is None:
                return False

            await db.execute(delete(MealItem).where(MealItem.meal_id == meal_id))
            res = await db.execute(delete(Meal).where(Meal.id == meal_id, Meal.user_id == user_id))
            await db.commit()
            return res.rowcount > 0

    async def list_meals(self, user_id: str, day: date) -> list[MealOut]:
        async with self.sessionmaker() as db:
            res = await db.execute(
                select(Meal)
                .where(Meal.user_id == user_id, Meal.date == day)
                .order_by(Meal.eaten_at.asc(), Meal.id.asc())
            )
            meals = res.scalars().all()

            meal_ids = [m.id for m in meals]
            items_by_meal: dict[str, list[MealItemIn]] = {mid: [] for mid in meal_ids}
            if meal_ids:
                item_res = await db.execute(select(MealItem).where(MealItem.meal_id.in_(meal_ids)))
                for i in item_res.scalars().all():
                    items_by_meal[i.meal_id].append(
                        MealItemIn(
                            id=i.id,
                            name=i.name,
                            grams=i.grams,
                            kcal=i.kcal,
                            protein_g=i.protein_g,
                            carbs_g=i.carbs_g,
                            fat_g=i.fat_g,
                            source=i.source,
                        )
                    )

        return [
            MealOut(
                id=m.id,
                user_id=m.user_id,
                name=m.name,
                date=m.date,
                meal_type=m.meal_type,
                eaten_at=m.eaten_at,
                is_ai_estimated=m.is_ai_estimated,
                items=items_by_meal[m.id],
                totals=MacroTotals(**sum_macros(items_by_meal[m.id])),
            )
            for m in meals
        ]
