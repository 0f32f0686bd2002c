from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.db import base as _models  # noqa: F401  registers every model
from app.core.db_check import wait_for_db
from app.core.logging import setup_logging
from app.api.v1.routes.system import router as system_router
from app.api.v1.routes.user import router as user_router
from app.api.v1.routes.group import router as group_router
from app.api.v1.routes.expense import router as expense_router
from app.api.v1.routes.settlement import router as settlement_router
from app.api.v1.routes.dashboard import router as dashboard_router

setup_logging()

@asynccontextmanager
async def lifespan(_: FastAPI):
    await wait_for_db()
    yield

app = FastAPI(title="Settle Backend", lifespan=lifespan)

@app.get("/")
async def root():
    return {"message": "Settle Backend is live"}

app.include_router(system_router, prefix="/api/v1/system")
app.include_router(user_router, prefix="/api/v1/users")
app.include_router(group_router, prefix="/api/v1/groups")
app.include_router(expense_router, prefix="/api/v1/expenses")
app.include_router(settlement_router, prefix="/api/v1/settlements")
app.include_router(dashboard_router, prefix="/api/v1/dashboard")
