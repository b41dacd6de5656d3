"""Quest and workout plan catalog, upserted at startup.

Keyed by natural keys (quest path + title, plan name, plan + day number) so
re-running the seed updates rows in place and never duplicates them.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questforge.db.dialect import insert_for
from questforge.db.models import PATH_HEAVENLY_DEMON, PATH_HUNTER, QuestDefinition, WorkoutPlan, WorkoutPlanDay

logger = logging.getLogger(__name__)


def _quest(path: str, category: str, difficulty: str, xp: int, title: str, description: str, flavor: str) -> dict:
    return {
        "path": path,
        "category": category,
        "difficulty": difficulty,
        "xp_reward": xp,
        "title": title,
        "description": description,
        "flavor_text": flavor,
        "is_active": True,
    }


QUEST_SEED_DATA: list[dict] = [
    # Hunter
    _quest(PATH_HUNTER, "coding", "medium", 35, "Deep Work Sprint (90m)",
           "One uninterrupted focus block with no social media.", "Lock in and ship real output."),
    _quest(PATH_HUNTER, "coding", "hard", 42, "Ship 1 Small Feature",
           "Deploy a scoped feature to production.", "Shipping beats polishing."),
    _quest(PATH_HUNTER, "coding", "medium", 22, "Write 3 Tests",
           "Add three meaningful tests for critical paths.", "Confidence equals velocity."),
    _quest(PATH_HUNTER, "business", "hard", 45, "Sales Outreach Block",
           "Reach out to 10 qualified prospects.", "Pipeline wins the week."),
    _quest(PATH_HUNTER, "business", "medium", 24, "Follow-Ups x10",
           "Follow up with 10 warm leads.", "Fortune follows follow-up."),
    _quest(PATH_HUNTER, "study", "medium", 30, "Study Session 2h",
           "Two hours of high-retention study with notes.", "Knowledge is a weapon."),
    _quest(PATH_HUNTER, "study", "easy", 16, "Read 20 Pages + Notes",
           "Read 20 pages and write 5 bullet notes.", "Consume less, retain more."),
    _quest(PATH_HUNTER, "gym", "medium", 28, "30-Min Zone 2 Run",
           "Run for 30 minutes at steady conversational pace.", "Endurance builds execution stamina."),
    _quest(PATH_HUNTER, "gym", "easy", 15, "45-Minute Walk",
           "Walk 45 minutes outdoors with pace intent.", "Low-intensity discipline stack."),
    _quest(PATH_HUNTER, "gym", "easy", 12, "20 Push-Ups Challenge",
           "Complete 20 strict push-ups with good form.", "Small reps compound fast."),
    _quest(PATH_HUNTER, "study", "easy", 12, "Daily Reflection",
           "Journal wins, misses, and next action.", "Feedback loop tightens performance."),
    # Heavenly Demon
    _quest(PATH_HEAVENLY_DEMON, "coding", "hard", 55, "Shadow Focus Block (120m)",
           "Two-hour blackout focus period.", "Enter the void and execute."),
    _quest(PATH_HEAVENLY_DEMON, "coding", "hard", 56, "High-Risk Feature Push",
           "Ship a difficult feature with rollback plan.", "Calm execution under risk."),
    _quest(PATH_HEAVENLY_DEMON, "coding", "hard", 36, "Debug Marathon",
           "90 minutes dedicated debugging sprint.", "Trace reality to root cause."),
    _quest(PATH_HEAVENLY_DEMON, "business", "hard", 42, "Revenue Hunt x20",
           "20 quality prospect touches in one block.", "Hunt with precision."),
    _quest(PATH_HEAVENLY_DEMON, "business", "medium", 30, "Offer Reframe",
           "Rebuild value prop + objection handling.", "Clarity converts."),
    _quest(PATH_HEAVENLY_DEMON, "study", "hard", 34, "Tactical Study 90m",
           "90-minute deep study with no interruptions.", "Depth over distraction."),
    _quest(PATH_HEAVENLY_DEMON, "study", "medium", 24, "Memory Vault 40",
           "40 active-recall cards completed.", "Memory under pressure."),
    _quest(PATH_HEAVENLY_DEMON, "gym", "medium", 30, "Demon Run 30m",
           "30-minute controlled run with no breaks.", "Control pace. Control mind."),
    _quest(PATH_HEAVENLY_DEMON, "gym", "hard", 44, "Strength Block Complete",
           "Finish full programmed strength block.", "Power through precision."),
    _quest(PATH_HEAVENLY_DEMON, "gym", "easy", 16, "Recovery Protocol",
           "Sleep prep + mobility + hydration compliance.", "Recovery is tactical."),
    _quest(PATH_HEAVENLY_DEMON, "business", "easy", 15, "Night Audit",
           "End-day tactical review and next-day strike plan.", "Plan before sleep."),
]


def _day(number: int, title: str, focus: str, cardio: str, work: list[str]) -> dict[str, Any]:
    return {
        "day_number": number,
        "title": title,
        "template": {"focus": focus, "cardio": cardio, "work": work},
    }


PLAN_SEED_DATA: list[dict] = [
    {
        "name": "HUNTER CUT PHASE PPL 5D",
        "path": PATH_HUNTER,
        "description": "5-day push/pull fat-loss split with daily conditioning.",
        "days": [
            _day(1, "PUSH A", "chest/shoulders/triceps + incline walk", "20m zone2",
                 ["Incline DB Press 4x8-10", "Machine Shoulder Press 4x10", "Cable Fly 3x12-15"]),
            _day(2, "PULL A", "back/biceps + intervals", "10x(30s hard/60s easy)",
                 ["Lat Pulldown 4x10", "Chest Supported Row 4x10", "EZ Curl 4x10"]),
            _day(3, "LEGS + CORE", "lower body + abs", "15m incline walk",
                 ["Back Squat 4x6-8", "Romanian Deadlift 4x8", "Hanging Knee Raise 3x15"]),
            _day(4, "PUSH B", "upper push hypertrophy", "20m bike",
                 ["Flat DB Press 4x10", "Arnold Press 4x10", "Overhead Triceps Ext 3x12"]),
            _day(5, "PULL B", "posterior chain + arms", "12m rower intervals",
                 ["Deadlift 4x5", "Seated Cable Row 4x10", "Hammer Curl 4x12"]),
        ],
    },
    {
        "name": "DEMON CUT PHASE PPL 5D",
        "path": PATH_HEAVENLY_DEMON,
        "description": "5-day aggressive push/pull fat-loss split with cardio finishers.",
        "days": [
            _day(1, "PUSH A (DEMON)", "heavy push", "25m zone2",
                 ["Barbell Bench 5x5", "Overhead Press 4x6", "Skull Crushers 4x10"]),
            _day(2, "PULL A (DEMON)", "heavy pull", "12 rounds assault bike",
                 ["Weighted Pull-up 5x5", "Barbell Row 5x6", "Barbell Curl 4x10"]),
            _day(3, "LEGS + CONDITIONING", "legs + engine", "sled pushes 10 rounds",
                 ["Front Squat 5x5", "RDL 4x8", "Ab Wheel 4x12"]),
            _day(4, "PUSH B (DEMON)", "volume push", "20m incline treadmill",
                 ["DB Bench 4x10", "Seated DB OHP 4x10", "Triceps Rope 4x12"]),
            _day(5, "PULL B (DEMON)", "volume pull", "15m intervals",
                 ["Romanian Deadlift 4x8", "Seated Row 4x10", "Hammer Curl 4x12"]),
        ],
    },
]


async def seed_quests(db: AsyncSession) -> int:
    """Upsert the quest catalog. Returns number of quests seeded."""
    for quest_data in QUEST_SEED_DATA:
        stmt = insert_for(db, QuestDefinition).values(**quest_data)
        stmt = stmt.on_conflict_do_update(
            index_elements=["path", "title"],
            set_={
                "description": stmt.excluded.description,
                "category": stmt.excluded.category,
                "difficulty": stmt.excluded.difficulty,
                "xp_reward": stmt.excluded.xp_reward,
                "is_active": stmt.excluded.is_active,
                "flavor_text": stmt.excluded.flavor_text,
            },
        )
        await db.execute(stmt)
    return len(QUEST_SEED_DATA)


async def seed_workout_plans(db: AsyncSession) -> int:
    """Upsert workout plans and their days. Returns number of plans seeded."""
    for plan_data in PLAN_SEED_DATA:
        values = {k: v for k, v in plan_data.items() if k != "days"}
        stmt = insert_for(db, WorkoutPlan).values(**values, is_active=True)
        stmt = stmt.on_conflict_do_update(
            index_elements=["name"],
            set_={
                "path": stmt.excluded.path,
                "description": stmt.excluded.description,
                "is_active": stmt.excluded.is_active,
            },
        )
        await db.execute(stmt)

        plan_id = (
            await db.execute(select(WorkoutPlan.id).where(WorkoutPlan.name == plan_data["name"]))
        ).scalar_one()
        for day in plan_data["days"]:
            day_stmt = insert_for(db, WorkoutPlanDay).values(plan_id=plan_id, **day)
            day_stmt = day_stmt.on_conflict_do_update(
                index_elements=["plan_id", "day_number"],
                set_={"title": day_stmt.excluded.title, "template": day_stmt.excluded.template},
            )
            await db.execute(day_stmt)
    return len(PLAN_SEED_DATA)


async def seed_catalog(db: AsyncSession) -> None:
    """Seed quests and workout plans in one transaction."""
    quests = await seed_quests(db)
    plans = await seed_workout_plans(db)
    await db.commit()
    logger.info("Seeded %d quests and %d workout plans", quests, plans)
