"""Activity catalog seed data: Morning Basics plus tiered challenges and quests."""

from __future__ import annotations

import logging

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from rocket.db.models import Activity
from rocket.gamification.activities import ActivityDetails, ActivityKind, Cadence

logger = logging.getLogger(__name__)

CATEGORIES = ["Mindset", "Sleep", "Exercise", "Nutrition", "Biohacking"]

ACTIVITY_SEED_DATA: list[dict] = [
    # Tier 0: unlocks every Tier 1 program
    {
        "id": "mb0",
        "name": "Morning Basics",
        "kind": "challenge",
        "category": "Bonus",
        "tier": 0,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 50,
        "cadence": "daily",
        "sort_order": 0,
    },
    # Mindset
    {
        "id": "mc1",
        "name": "Gratitude Reset",
        "kind": "challenge",
        "category": "Mindset",
        "tier": 1,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 50,
        "cadence": "daily",
        "sort_order": 10,
    },
    {
        "id": "mc2",
        "name": "Focus Sprint",
        "kind": "challenge",
        "category": "Mindset",
        "tier": 1,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 50,
        "cadence": "daily",
        "sort_order": 11,
    },
    {
        "id": "mc3",
        "name": "Flow State Mastery",
        "kind": "challenge",
        "category": "Mindset",
        "tier": 2,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 100,
        "cadence": "daily",
        "sort_order": 12,
    },
    # Sleep
    {
        "id": "sc1",
        "name": "Sleep Schedule Lock-In",
        "kind": "challenge",
        "category": "Sleep",
        "tier": 1,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 50,
        "cadence": "daily",
        "sort_order": 20,
    },
    {
        "id": "sc2",
        "name": "Evening Wind-Down",
        "kind": "challenge",
        "category": "Sleep",
        "tier": 1,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 50,
        "cadence": "daily",
        "sort_order": 21,
    },
    {
        "id": "sc3",
        "name": "Deep Sleep Optimization",
        "kind": "challenge",
        "category": "Sleep",
        "tier": 2,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 100,
        "cadence": "daily",
        "sort_order": 22,
    },
    # Exercise
    {
        "id": "ec1",
        "name": "Daily Movement",
        "kind": "challenge",
        "category": "Exercise",
        "tier": 1,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 50,
        "cadence": "daily",
        "sort_order": 30,
    },
    {
        "id": "ec2",
        "name": "Zone 2 Foundations",
        "kind": "challenge",
        "category": "Exercise",
        "tier": 1,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 50,
        "cadence": "daily",
        "sort_order": 31,
    },
    {
        "id": "ec3",
        "name": "Strength Progression",
        "kind": "challenge",
        "category": "Exercise",
        "tier": 2,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 100,
        "cadence": "daily",
        "sort_order": 32,
    },
    # Nutrition
    {
        "id": "nc1",
        "name": "Whole Food Week",
        "kind": "challenge",
        "category": "Nutrition",
        "tier": 1,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 50,
        "cadence": "daily",
        "sort_order": 40,
    },
    {
        "id": "nc2",
        "name": "Protein First",
        "kind": "challenge",
        "category": "Nutrition",
        "tier": 1,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 50,
        "cadence": "daily",
        "sort_order": 41,
    },
    {
        "id": "nc3",
        "name": "Metabolic Flexibility",
        "kind": "challenge",
        "category": "Nutrition",
        "tier": 2,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 100,
        "cadence": "daily",
        "sort_order": 42,
    },
    # Biohacking
    {
        "id": "bc1",
        "name": "Morning Light",
        "kind": "challenge",
        "category": "Biohacking",
        "tier": 1,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 50,
        "cadence": "daily",
        "sort_order": 50,
    },
    {
        "id": "bc2",
        "name": "Cold Exposure",
        "kind": "challenge",
        "category": "Biohacking",
        "tier": 1,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 50,
        "cadence": "daily",
        "sort_order": 51,
    },
    {
        "id": "bc3",
        "name": "HRV Training",
        "kind": "challenge",
        "category": "Biohacking",
        "tier": 2,
        "duration_days": 21,
        "required_count": 21,
        "fuel_points": 100,
        "cadence": "daily",
        "sort_order": 52,
    },
    # Quests: 12 weekly actions over 90 days
    {
        "id": "mq1",
        "name": "Mindset Foundations",
        "kind": "quest",
        "category": "Mindset",
        "tier": 1,
        "duration_days": 90,
        "required_count": 12,
        "fuel_points": 150,
        "cadence": "weekly",
        "sort_order": 100,
    },
    {
        "id": "mq2",
        "name": "Mindset Mastery",
        "kind": "quest",
        "category": "Mindset",
        "tier": 2,
        "duration_days": 90,
        "required_count": 12,
        "fuel_points": 300,
        "cadence": "weekly",
        "sort_order": 101,
    },
    {
        "id": "sq1",
        "name": "Sleep Foundations",
        "kind": "quest",
        "category": "Sleep",
        "tier": 1,
        "duration_days": 90,
        "required_count": 12,
        "fuel_points": 150,
        "cadence": "weekly",
        "sort_order": 110,
    },
    {
        "id": "sq2",
        "name": "Sleep Mastery",
        "kind": "quest",
        "category": "Sleep",
        "tier": 2,
        "duration_days": 90,
        "required_count": 12,
        "fuel_points": 300,
        "cadence": "weekly",
        "sort_order": 111,
    },
    {
        "id": "eq1",
        "name": "Exercise Foundations",
        "kind": "quest",
        "category": "Exercise",
        "tier": 1,
        "duration_days": 90,
        "required_count": 12,
        "fuel_points": 150,
        "cadence": "weekly",
        "sort_order": 120,
    },
    {
        "id": "nq1",
        "name": "Nutrition Foundations",
        "kind": "quest",
        "category": "Nutrition",
        "tier": 1,
        "duration_days": 90,
        "required_count": 12,
        "fuel_points": 150,
        "cadence": "weekly",
        "sort_order": 130,
    },
    {
        "id": "bq1",
        "name": "Biohacking Foundations",
        "kind": "quest",
        "category": "Biohacking",
        "tier": 1,
        "duration_days": 90,
        "required_count": 12,
        "fuel_points": 150,
        "cadence": "weekly",
        "sort_order": 140,
    },
    # Contest programs: verification posts instead of daily check-ins
    {
        "id": "cn_oura_sleep_week_score",
        "name": "Oura Sleep Week Contest",
        "kind": "contest",
        "category": "Contests",
        "tier": 1,
        "duration_days": 7,
        "required_count": 8,
        "fuel_points": 150,
        "cadence": "verification",
        "sort_order": 200,
    },
    {
        "id": "cn_hoka_running_strava",
        "name": "HOKA Running Challenge",
        "kind": "contest",
        "category": "Contests",
        "tier": 1,
        "duration_days": 7,
        "required_count": 7,
        "fuel_points": 150,
        "cadence": "verification",
        "sort_order": 201,
    },
]


def seed_catalog() -> list[ActivityDetails]:
    """The seed data as catalog values (used where no database is involved)."""
    return [
        ActivityDetails(
            id=a["id"],
            name=a["name"],
            kind=ActivityKind(a["kind"]),
            category=a["category"],
            tier=a["tier"],
            duration_days=a["duration_days"],
            required_count=a["required_count"],
            fuel_points=a["fuel_points"],
            cadence=Cadence(a["cadence"]),
        )
        for a in ACTIVITY_SEED_DATA
    ]


async def seed_activities(db: AsyncSession) -> int:
    """Upsert every catalog activity. Returns number of activities seeded."""
    seeded = 0
    for activity_data in ACTIVITY_SEED_DATA:
        stmt = pg_insert(Activity).values(**activity_data)
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={
                "name": stmt.excluded.name,
                "kind": stmt.excluded.kind,
                "category": stmt.excluded.category,
                "tier": stmt.excluded.tier,
                "duration_days": stmt.excluded.duration_days,
                "required_count": stmt.excluded.required_count,
                "fuel_points": stmt.excluded.fuel_points,
                "cadence": stmt.excluded.cadence,
                "sort_order": stmt.excluded.sort_order,
            },
        )
        await db.execute(stmt)
        seeded += 1

    await db.commit()
    logger.info("Seeded %d catalog activities", seeded)
    return seeded
