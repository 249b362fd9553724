"""Sample catalog for local development."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from learnhub.db.models import Course

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

SAMPLE_COURSES = [
    {
        "title": "Complete Web Development Bootcamp",
        "description": "HTML, CSS, JavaScript, Node.js and databases from scratch to deployment.",
        "instructor": "Dr. Angela Yu",
        "duration": "65 hours",
        "price": 89.99,
        "category": "Web Development",
        "level": "beginner",
    },
    {
        "title": "Python for Data Science",
        "description": "NumPy, pandas, visualisation and an introduction to machine learning.",
        "instructor": "Jose Portilla",
        "duration": "25 hours",
        "price": 94.99,
        "category": "Data Science",
        "level": "intermediate",
    },
    {
        "title": "Machine Learning A-Z",
        "description": "Regression, classification, clustering and deep learning with hands-on labs.",
        "instructor": "Kirill Eremenko",
        "duration": "44 hours",
        "price": 129.99,
        "category": "Machine Learning",
        "level": "advanced",
    },
    {
        "title": "UI/UX Design Fundamentals",
        "description": "User research, wireframing, prototyping and usability testing.",
        "instructor": "Daniel Scott",
        "duration": "18 hours",
        "price": 0,
        "category": "Design",
        "level": "beginner",
    },
]


async def seed_sample_courses(db: AsyncSession, created_by: int) -> int:
    """Insert the sample catalog if no course exists yet. Returns the number created."""
    existing = await db.scalar(select(func.count()).select_from(Course))
    if existing:
        return 0

    now = datetime.now(timezone.utc)
    for fields in SAMPLE_COURSES:
        db.add(Course(**fields, status="published", created_by=created_by, created_at=now, updated_at=now))
    await db.flush()
    logger.info("sample_courses_seeded", count=len(SAMPLE_COURSES))
    return len(SAMPLE_COURSES)
