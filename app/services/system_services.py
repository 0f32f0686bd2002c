import logging
from datetime import datetime, timezone
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import engine
from app.models.expense import Expense
from app.models.group import Group
from app.models.settlement import Settlement
from app.models.user import User

logger = logging.getLogger(__name__)

async def check_db_service():
    try:
        async with engine.connect() as conn:
            await conn.exec_driver_sql("SELECT 1")
    except Exception as e:
        logger.warning("database health check failed: %s", e)
        return {"db": False, "error": str(e)}

    return {"db": True, "message": "Database is connected"}

async def system_health():
    return {
        "status": "ok",
        "time": datetime.now(timezone.utc).isoformat(),
    }

async def system_metrics(db: AsyncSession):
    counts = {}
    for label, model in (
        ("users", User),
        ("groups", Group),
        ("expenses", Expense),
        ("settlements", Settlement),
    ):
        counts[label] = await db.scalar(select(func.count(model.id))) or 0

    counts["personal_expenses"] = await db.scalar(
        select(func.count(Expense.id)).where(Expense.group_id.is_(None))
    ) or 0

    return counts
