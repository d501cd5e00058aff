import asyncio
import logging
from collections.abc import Awaitable, Callable

from spendwise.db.models import Expense, ExpenseDraft
from spendwise.services.api_client import ApiError, ExpenseApi, NotAuthenticatedError

logger = logging.getLogger(__name__)

Notifier = Callable[[str], Awaitable[None]]


class ExpenseStore:
    """In-memory list of one user's expenses, mirrored from the remote service.

    Local state only changes after the service confirms a write. Each failed
    operation sends exactly one notice through ``notify`` and re-raises, so
    callers must not report the error again.
    """

    def __init__(self, api: ExpenseApi, notify: Notifier, token: str | None = None) -> None:
        self.api = api
        self.notify = notify
        self._token = token
        self._generation = 0
        self._loaded_generation: int | None = None
        self._expenses: list[Expense] = []
        self._inflight: asyncio.Task | None = None
        self._inflight_generation: int | None = None

    @property
    def expenses(self) -> list[Expense]:
        return list(self._expenses)

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def is_loading(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    @property
    def is_loaded(self) -> bool:
        return self._loaded_generation == self._generation

    def set_token(self, token: str | None) -> None:
        """Start a new authentication transition; any in-flight load becomes stale."""
        self._token = token
        self._generation += 1
        self._loaded_generation = None
        self._expenses = []

    async def _require_token(self) -> str:
        if not self._token:
            await self.notify("Please /login first.")
            raise NotAuthenticatedError("No bearer token")
        return self._token

    async def _fetch(self, token: str, generation: int) -> None:
        try:
            expenses = await self.api.list_expenses(token)
        except ApiError:
            if generation != self._generation:
                logger.info("Ignoring failed load from a previous session")
                return
            await self.notify("Failed to fetch expenses")
            raise

        if generation != self._generation:
            logger.info("Discarding stale expense list (generation %d, now %d)", generation, self._generation)
            return
        self._expenses = expenses
        self._loaded_generation = generation
        logger.debug("Loaded %d expenses", len(expenses))

    async def load(self) -> None:
        """Fetch the full list, joining a fetch already running for this session."""
        token = await self._require_token()
        generation = self._generation
        task = self._inflight
        if task is None or task.done() or self._inflight_generation != generation:
            task = asyncio.create_task(self._fetch(token, generation))
            self._inflight = task
            self._inflight_generation = generation
        await asyncio.shield(task)

    async def ensure_loaded(self) -> None:
        if not self.is_loaded:
            await self.load()

    async def create(self, draft: ExpenseDraft) -> Expense:
        token = await self._require_token()
        generation = self._generation
        try:
            expense = await self.api.create_expense(token, draft)
        except ApiError:
            await self.notify("Failed to add expense")
            raise
        if generation == self._generation:
            self._expenses = [*self._expenses, expense]
        logger.info("Created expense", extra={"expense_id": expense.id})
        return expense

    async def remove(self, expense_id: str) -> None:
        token = await self._require_token()
        generation = self._generation
        try:
            await self.api.delete_expense(token, expense_id)
        except ApiError:
            await self.notify("Failed to delete expense")
            raise
        if generation == self._generation:
            self._expenses = [e for e in self._expenses if e.id != expense_id]
        logger.info("Deleted expense", extra={"expense_id": expense_id})

    def get(self, expense_id: str) -> Expense | None:
        return next((e for e in self._expenses if e.id == expense_id), None)
