from liftlog.storage.base import CatalogStore, MealStore, WorkoutStore
from liftlog.storage.meals import SqlAlchemyMealStore
from liftlog.storage.workouts import SqlAlchemyWorkoutStore

__all__ = [
    "CatalogStore",
    "MealStore",
    "SqlAlchemyMealStore",
    "SqlAlchemyWorkoutStore",
    "WorkoutStore",
]
