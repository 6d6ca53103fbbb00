from liftlog.models.exercise import Exercise
from liftlog.models.meal import Meal, MealItem
from liftlog.models.workout import Workout
from liftlog.models.workout_exercise import WorkoutExercise
from liftlog.models.workout_set import WorkoutSet
from liftlog.models.workout_template import WorkoutTemplate
from liftlog.models.workout_template_exercise import WorkoutTemplateExercise
from liftlog.models.workout_template_set import WorkoutTemplateSet

__all__ = [
    "Exercise",
    "Meal",
    "MealItem",
    "Workout",
    "WorkoutExercise",
    "WorkoutSet",
    "WorkoutTemplate",
    "WorkoutTemplateExercise",
    "WorkoutTemplateSet",
]
