import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from spendwise.db.database import get_db
from spendwise.db.models import FilterState, Session, parse_datetime
from spendwise.services.api_client import ExpenseApi
from spendwise.services.expense_store import ExpenseStore, Notifier

logger = logging.getLogger(__name__)

NotifierFactory = Callable[[int], Notifier]


async def save_session(session: Session) -> None:
    db = await get_db()
    await db.execute(
        "INSERT OR REPLACE INTO sessions (chat_id, token, user_id, name, email) VALUES (?, ?, ?, ?, ?)",
        (session.chat_id, session.token, session.user_id, session.name, session.email),
    )
    await db.commit()


async def get_session(chat_id: int) -> Session | None:
    db = await get_db()
    cursor = await db.execute("SELECT * FROM sessions WHERE chat_id = ?", (chat_id,))
    row = await cursor.fetchone()
    if not row:
        return None
    return Session(
        chat_id=row["chat_id"],
        token=row["token"],
        user_id=row["user_id"],
        name=row["name"],
        email=row["email"],
        created_at=parse_datetime(row["created_at"]) if row["created_at"] else None,
    )


async def delete_session(chat_id: int) -> bool:
    db = await get_db()
    cursor = await db.execute("DELETE FROM sessions WHERE chat_id = ?", (chat_id,))
    await db.commit()
    return cursor.rowcount > 0


@dataclass(slots=True)
class ChatState:
    store: ExpenseStore
    filters: FilterState = field(default_factory=FilterState)
    name: str | None = None


class SessionRegistry:
    """Per-chat expense stores and filter state, shared by all handlers."""

    def __init__(self, api: ExpenseApi, notifier_factory: NotifierFactory) -> None:
        self.api = api
        self.notifier_factory = notifier_factory
        self._chats: dict[int, ChatState] = {}

    async def get(self, chat_id: int) -> ChatState:
        state = self._chats.get(chat_id)
        if state is None:
            session = await get_session(chat_id)
            store = ExpenseStore(self.api, self.notifier_factory(chat_id))
            state = ChatState(store=store, name=session.name if session else None)
            if session:
                store.set_token(session.token)
            self._chats[chat_id] = state
        return state

    async def _start_session(self, chat_id: int, payload: dict) -> ChatState:
        user = payload.get("user") or {}
        session = Session(
            chat_id=chat_id,
            token=payload["token"],
            user_id=str(user["id"]) if user.get("id") is not None else None,
            name=user.get("name"),
            email=user.get("email"),
        )
        await save_session(session)
        state = await self.get(chat_id)
        state.name = session.name
        state.filters = FilterState()
        state.store.set_token(session.token)
        logger.info("Session started", extra={"chat_id": chat_id, "user_id": session.user_id})
        return state

    async def login(self, chat_id: int, email: str, password: str) -> ChatState:
        payload = await self.api.login(email, password)
        return await self._start_session(chat_id, payload)

    async def register(self, chat_id: int, name: str, email: str, password: str) -> ChatState:
        payload = await self.api.register(name, email, password)
        return await self._start_session(chat_id, payload)

    async def logout(self, chat_id: int) -> bool:
        removed = await delete_session(chat_id)
        state = self._chats.pop(chat_id, None)
        if state:
            state.store.set_token(None)
        logger.info("Session ended", extra={"chat_id": chat_id})
        return removed
