from __future__ import annotations

from datetime import datetime

from loguru import logger
from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from liftlog.models.exercise import Exercise
from liftlog.models.workout import Workout
from liftlog.models.workout_exercise import WorkoutExercise
from liftlog.models.workout_set import WorkoutSet
from liftlog.models.workout_template import WorkoutTemplate
from liftlog.models.workout_template_exercise import WorkoutTemplateExercise
from liftlog.models.workout_template_set import WorkoutTemplateSet
from liftlog.schemas.session import CatalogExercise, PreviousPerformance, PreviousSet, SetTag, new_id
from liftlog.schemas.templates import (
    CreateExerciseIn,
    CreateTemplateIn,
    Template,
    TemplateExercise,
    TemplateSet,
)
from liftlog.schemas.workouts import (
    WorkoutDetail,
    WorkoutExerciseOut,
    WorkoutExerciseRecord,
    WorkoutRecord,
    WorkoutSetOut,
    WorkoutSetRecord,
    WorkoutSummary,
)


class SqlAlchemyWorkoutStore:
    """WorkoutStore and CatalogStore over an async SQLAlchemy engine.

    Every call opens its own session, so each write is its own transaction.
    """

    def __init__(self, sessionmaker: async_sessionmaker):
        self.sessionmaker = sessionmaker

    # WRITES (commit protocol)

    async def insert_workout(self, record: WorkoutRecord) -> str:
        async with self.sessionmaker() as db:
            workout = Workout(
                id=record.id,
                user_id=record.user_id,
                name=record.name,
                template_id=record.template_id,
                started_at=record.started_at,
                finished_at=record.finished_at,
                duration_seconds=record.duration_seconds,
                total_volume_kg=record.total_volume_kg,
            )
            db.add(workout)
            await db.commit()
            return workout.id

    async def insert_workout_exercise(self, record: WorkoutExerciseRecord) -> str:
        async with self.sessionmaker() as db:
            ex = WorkoutExercise(
                id=record.id,
                workout_id=record.workout_id,
                exercise_id=record.exercise_id,
                notes=record.notes,
                order_index=record.order,
            )
            db.add(ex)
            await db.commit()
            return ex.id

    async def insert_workout_sets(self, records: list[WorkoutSetRecord]) -> None:
        if not records:
            return
        async with self.sessionmaker() as db:
            db.add_all(
                WorkoutSet(
                    id=r.id,
                    workout_exercise_id=r.workout_exercise_id,
                    set_number=r.set_number,
                    tag=r.tag.value,
                    actual_weight=r.actual_weight,
                    actual_reps=r.actual_reps,
                    rpe=r.rpe,
                )
                for r in records
            )
            await db.commit()

    async def touch_template(self, template_id: str, last_used_at: datetime) -> None:
        async with self.sessionmaker() as db:
            await db.execute(
                update(WorkoutTemplate)
                .where(WorkoutTemplate.id == template_id)
                .values(last_used_at=last_used_at)
            )
            await db.commit()

    # READS

    async def fetch_previous_performance(
        self, exercise_id: str, user_id: str
    ) -> PreviousPerformance | None:
        async with self.sessionmaker() as db:
            res = await db.execute(
                select(WorkoutExercise.id, Workout.id, Workout.finished_at)
                .join(Workout, WorkoutExercise.workout_id == Workout.id)
                .where(
                    WorkoutExercise.exercise_id == exercise_id,
                    Workout.user_id == user_id,
                )
                .order_by(Workout.finished_at.desc(), WorkoutExercise.order_index.asc())
                .limit(1)
            )
            row = res.first()
            if row is None:
                return None
            workout_exercise_id, workout_id, finished_at = row

            set_res = await db.execute(
                select(WorkoutSet)
                .where(WorkoutSet.workout_exercise_id == workout_exercise_id)
                .order_by(WorkoutSet.set_number.asc(), WorkoutSet.id.asc())
            )
            sets = set_res.scalars().all()

        return PreviousPerformance(
            workout_id=workout_id,
            finished_at=finished_at,
            sets=[PreviousSet(weight=s.actual_weight, reps=s.actual_reps) for s in sets],
        )

    async def get_catalog_exercise(self, exercise_id: str) -> CatalogExercise | None:
        async with self.sessionmaker() as db:
            ex = await db.get(Exercise, exercise_id)
            return CatalogExercise.model_validate(ex) if ex else None

    async def list_catalog_exercises(self, user_id: str) -> list[CatalogExercise]:
        async with self.sessionmaker() as db:
            res = await db.execute(
                select(Exercise)
                .where(or_(Exercise.user_id.is_(None), Exercise.user_id == user_id))
                .order_by(Exercise.name.asc())
            )
            return [CatalogExercise.model_validate(e) for e in res.scalars().all()]

    async def create_catalog_exercise(self, user_id: str, payload: CreateExerciseIn) -> CatalogExercise:
        async with self.sessionmaker() as db:
            ex = Exercise(
                id=new_id(),
                name=payload.name,
                primary_muscles=payload.primary_muscles,
                secondary_muscles=payload.secondary_muscles,
                equipment=payload.equipment,
                is_custom=True,
                user_id=user_id,
            )
            db.add(ex)
            await db.commit()
            return CatalogExercise.model_validate(ex)

    async def get_template(self, template_id: str, user_id: str) -> Template | None:
        async with self.sessionmaker() as db:
            res = await db.execute(
                select(WorkoutTemplate).where(
                    WorkoutTemplate.id == template_id,
                    WorkoutTemplate.user_id == user_id,
                )
            )
            template = res.scalar_one_or_none()
            if not template:
                return None

            ex_res = await db.execute(
                select(WorkoutTemplateExercise, Exercise)
                .join(Exercise, WorkoutTemplateExercise.exercise_id == Exercise.id)
                .where(WorkoutTemplateExercise.template_id == template.id)
                .order_by(
                    WorkoutTemplateExercise.order_index.asc(),
                    WorkoutTemplateExercise.id.asc(),
                )
            )
            exercise_rows = ex_res.all()

            tex_ids = [tex.id for tex, _ in exercise_rows]
            sets_by_ex: dict[str, list[WorkoutTemplateSet]] = {tid: [] for tid in tex_ids}
            if tex_ids:
                set_res = await db.execute(
                    select(WorkoutTemplateSet)
                    .where(WorkoutTemplateSet.template_exercise_id.in_(tex_ids))
                    .order_by(WorkoutTemplateSet.set_number.asc(), WorkoutTemplateSet.id.asc())
                )
                for ts in set_res.scalars().all():
                    sets_by_ex[ts.template_exercise_id].append(ts)

        return Template(
            id=template.id,
            user_id=template.user_id,
            name=template.name,
            description=template.description,
            estimated_duration_minutes=template.estimated_duration_minutes,
            last_used_at=template.last_used_at,
            exercises=[
                TemplateExercise(
                    id=tex.id,
                    exercise_id=tex.exercise_id,
                    exercise=CatalogExercise.model_validate(catalog),
                    order=tex.order_index,
                    notes=tex.notes,
                    sets=[
                        TemplateSet(
                            id=ts.id,
                            set_number=ts.set_number,
                            target_reps=ts.target_reps,
                            target_weight=ts.target_weight,
                            rest_seconds=ts.rest_seconds,
                            tag=SetTag(ts.tag) if ts.tag else None,
                        )
                        for ts in sets_by_ex[tex.id]
                    ],
                )
                for tex, catalog in exercise_rows
            ],
        )

    async def list_templates(self, user_id: str) -> list[Template]:
        async with self.sessionmaker() as db:
            res = await db.execute(
                select(WorkoutTemplate.id)
                .where(WorkoutTemplate.user_id == user_id)
                .order_by(WorkoutTemplate.created_at.desc())
            )
            template_ids = res.scalars().all()

        templates = []
        for template_id in template_ids:
            template = await self.get_template(template_id, user_id)
            if template is not None:
                templates.append(template)
        return templates

    async def create_template(self, user_id: str, payload: CreateTemplateIn) -> Template:
        template_id = new_id()
        async with self.sessionmaker() as db:
            db.add(
                WorkoutTemplate(
                    id=template_id,
                    user_id=user_id,
                    name=payload.name,
                    description=payload.description,
                    estimated_duration_minutes=payload.estimated_duration_minutes,
                )
            )
            await db.flush()

            for idx, ex_data in enumerate(payload.exercises):
                tex = WorkoutTemplateExercise(
                    id=new_id(),
                    template_id=template_id,
                    exercise_id=ex_data.exercise_id,
                    order_index=ex_data.order if ex_data.order is not None else idx,
                    notes=ex_data.notes,
                )
                db.add(tex)
                await db.flush()

                for set_idx, set_data in enumerate(ex_data.sets):
                    db.add(
                        WorkoutTemplateSet(
                            id=new_id(),
                            template_exercise_id=tex.id,
                            set_number=set_data.set_number or set_idx + 1,
                            target_reps=set_data.target_reps,
                            target_weight=set_data.target_weight,
                            rest_seconds=set_data.rest_seconds,
                            tag=set_data.tag.value if set_data.tag else None,
                        )
                    )

            await db.commit()

        logger.info(f"Template {template_id} created with {len(payload.exercises)} exercises")
        return await self.get_template(template_id, user_id)

    async def list_workouts(self, user_id: str, *, limit: int = 20, offset: int = 0) -> list[WorkoutSummary]:
        limit = max(1, min(limit, 100))
        async with self.sessionmaker() as db:
            res = await db.execute(
                select(Workout)
                .where(Workout.user_id == user_id)
                .order_by(Workout.finished_at.desc(), Workout.id.desc())
                .limit(limit)
                .offset(offset)
            )
            return [WorkoutSummary.model_validate(w) for w in res.scalars().all()]

    async def get_workout(self, workout_id: str, user_id: str) -> WorkoutDetail | None:
        async with self.sessionmaker() as db:
            res = await db.execute(
                select(Workout).where(Workout.id == workout_id, Workout.user_id == user_id)
            )
            workout = res.scalar_one_or_none()
            if not workout:
                return None

            ex_res = await db.execute(
                select(WorkoutExercise, Exercise)
                .outerjoin(Exercise, WorkoutExercise.exercise_id == Exercise.id)
                .where(WorkoutExercise.workout_id == workout.id)
                .order_by(WorkoutExercise.order_index.asc(), WorkoutExercise.id.asc())
            )
            exercise_rows = ex_res.all()

            wex_ids = [wex.id for wex, _ in exercise_rows]
            sets_by_ex: dict[str, list[WorkoutSet]] = {wid: [] for wid in wex_ids}
            if wex_ids:
                set_res = await db.execute(
                    select(WorkoutSet)
                    .where(WorkoutSet.workout_exercise_id.in_(wex_ids))
                    .order_by(WorkoutSet.set_number.asc(), WorkoutSet.id.asc())
                )
                for ws in set_res.scalars().all():
                    sets_by_ex[ws.workout_exercise_id].append(ws)

        return WorkoutDetail(
            id=workout.id,
            name=workout.name,
            template_id=workout.template_id,
            started_at=workout.started_at,
            finished_at=workout.finished_at,
            duration_seconds=workout.duration_seconds,
            total_volume_kg=workout.total_volume_kg,
            exercises=[
                WorkoutExerciseOut(
                    id=wex.id,
                    exercise_id=wex.exercise_id,
                    exercise=CatalogExercise.model_validate(catalog) if catalog else None,
                    notes=wex.notes,
                    order=wex.order_index,
                    sets=[
                        WorkoutSetOut(
                            id=ws.id,
                            set_number=ws.set_number,
                            tag=SetTag(ws.tag),
                            actual_weight=ws.actual_weight,
                            actual_reps=ws.actual_reps,
                            rpe=ws.rpe,
                        )
                        for ws in sets_by_ex[wex.id]
                    ],
                )
                for wex, catalog in exercise_rows
            ],
        )

    async def delete_workout(self, workout_id: str, user_id: str) -> bool:
        async with self.sessionmaker() as db:
            res = await db.execute(
                select(Workout.id).where(Workout.id == workout_id, Workout.user_id == user_id)
            )
            if res.scalar_one_or_none() is None:
                return False

            wex_ids = select(WorkoutExercise.id).where(WorkoutExercise.workout_id == workout_id)
            await db.execute(delete(WorkoutSet).where(WorkoutSet.workout_exercise_id.in_(wex_ids)))
            await db.execute(delete(WorkoutExercise).where(WorkoutExercise.workout_id == workout_id))
            await db.execute(delete(Workout).where(Workout.id == workout_id))
            await db.commit()

        logger.info(f"Workout {workout_id} deleted by user {user_id}")
        return True

    async def delete_template(self, template_id: str, user_id: str) -> bool:
        async with self.sessionmaker() as db:
            res = await db.execute(
                select(WorkoutTemplate.id).where(
                    WorkoutTemplate.id == template_id,
                    WorkoutTemplate.user_id == user_id,
                )
            )
            if res.scalar_one_or_none() is None:
                return False

            tex_ids = select(WorkoutTemplateExercise.id).where(
                WorkoutTemplateExercise.template_id == template_id
            )
            await db.execute(
                delete(WorkoutTemplateSet).where(WorkoutTemplateSet.template_exercise_id.in_(tex_ids))
            )
            await db.execute(
                delete(WorkoutTemplateExercise).where(WorkoutTemplateExercise.template_id == template_id)
            )
            # History outlives the template it was started from
            await db.execute(
                update(Workout).where(Workout.template_id == template_id).values(template_id=None)
            )
            await db.execute(delete(WorkoutTemplate).where(WorkoutTemplate.id == template_id))
            await db.commit()

        logger.info(f"Template {template_id} deleted by user {user_id}")
        return True

    async def duplicate_template(self, template_id: str, user_id: str) -> Template | None:
        template = await self.get_template(template_id, user_id)
        if template is None:
            return None
        return await self.create_template(
            user_id,
            CreateTemplateIn(
                name=f"{template.name} (copy)",
                description=template.description,
                estimated_duration_minutes=template.estimated_duration_minutes,
                exercises=template.exercises,
            ),
        )
