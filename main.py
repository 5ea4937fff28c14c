from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import List, Optional
import logging

from balance_engine import BalanceEngine
from config import Config
from errors import ConflictError, NotFoundError, StorageError, ValidationError
from ledger_store import LedgerStore
from models import (
    Expense,
    ExpenseDraft,
    Group,
    GroupBalances,
    GroupCreate,
    Member,
    MemberCreate,
    SpendingSummary,
)
from storage import GroupRepository

# Configure logging
logging.basicConfig(level=Config.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)


def create_app(store: Optional[LedgerStore] = None, repository: Optional[GroupRepository] = None) -> FastAPI:
    """
    Build the API around a ledger store.

    Endpoints are coroutines on a single event loop and the store never
    awaits, so mutations on a group cannot interleave. When a repository is
    given, the whole collection is saved after every successful mutation,
    and a mutation whose save fails is rolled back before the 500 is returned.
    """
    if store is None:
        store = LedgerStore(repository.load() if repository else None)

    app = FastAPI(
        title="Shared Expense Ledger API",
        description="Record shared group expenses and see who owes whom",
        version="1.0.0",
    )

    # CORS middleware to allow frontend connections
    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.store = store
    app.state.repository = repository

    def commit(operation, *args):
        # Apply a mutation and save; a failed save rolls the store back
        state = store.snapshot()
        result = operation(*args)
        if repository is not None:
            try:
                repository.save(store.list_groups())
            except StorageError:
                store.restore(state)
                raise
        return result

    # ===== ERROR MAPPING =====
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(f"Error persisting groups: {exc}")
        return JSONResponse(status_code=500, content={"detail": f"Error persisting groups: {exc}"})

    # ===== API ENDPOINTS =====
    @app.get("/")
    async def root():
        return {"message": "Shared Expense Ledger API"}

    @app.post("/groups/", response_model=Group, status_code=201)
    async def create_group(group: GroupCreate):
        """Create a new group"""
        return commit(store.create_group, group.name, group.member_names)

    @app.get("/groups/", response_model=List[Group])
    async def list_groups():
        """List all groups"""
        return store.list_groups()

    @app.get("/groups/{group_id}", response_model=Group)
    async def get_group(group_id: str):
        """Get group details"""
        return store.get_group(group_id)

    @app.post("/groups/{group_id}/members", response_model=Member, status_code=201)
    async def add_member(group_id: str, member: MemberCreate):
        """Add a member to a group"""
        return commit(store.add_member, group_id, member.name)

    @app.delete("/groups/{group_id}/members/{member_id}", response_model=Member)
    async def remove_member(group_id: str, member_id: str):
        """Remove a member that no expense refers to"""
        return commit(store.remove_member, group_id, member_id)

    @app.post("/groups/{group_id}/expenses", response_model=Expense, status_code=201)
    async def add_expense(group_id: str, expense: ExpenseDraft):
        """Record an expense split equally among all members"""
        return commit(store.add_expense, group_id, expense)

    @app.get("/groups/{group_id}/expenses", response_model=List[Expense])
    async def list_expenses(group_id: str, category: Optional[str] = None):
        """List a group's expenses, optionally filtered by category"""
        return store.list_expenses(group_id, category)

    @app.get("/groups/{group_id}/balances", response_model=GroupBalances)
    async def get_balances(group_id: str, viewer_member_id: Optional[str] = None):
        """Net balance of every member plus the viewer's formatted balance"""
        return BalanceEngine.compute_balances(store.get_group(group_id), viewer_member_id)

    @app.get("/groups/{group_id}/spending", response_model=SpendingSummary)
    async def get_group_spending(group_id: str):
        """Get spending breakdown by category for a specific group"""
        return BalanceEngine.summarize_spending(store.get_group(group_id))

    return app


def build_app() -> FastAPI:
    """
    Validate the settings and build the app backed by the configured groups file.

    Serve with `uvicorn main:build_app --factory` or `python main.py`.
    """
    Config.validate_config()
    return create_app(repository=GroupRepository(Config.GROUPS_FILE))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(build_app(), host=Config.HOST, port=Config.PORT)
