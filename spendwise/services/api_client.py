import logging
import time

import httpx

from spendwise.config import settings
from spendwise.db.models import Expense, ExpenseDraft

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TransportError(ApiError):
    pass


class NotAuthenticatedError(ApiError):
    pass


class AuthenticationError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ValidationError(ApiError):
    pass


_STATUS_ERRORS: dict[int, type[ApiError]] = {
    400: ValidationError,
    401: AuthenticationError,
    403: AuthenticationError,
    404: NotFoundError,
    422: ValidationError,
}


def _error_for(resp: httpx.Response) -> ApiError:
    try:
        message = resp.json().get("message")
    except (ValueError, AttributeError):
        message = None
    error_cls = _STATUS_ERRORS.get(resp.status_code, ApiError)
    return error_cls(message or f"HTTP {resp.status_code}", status_code=resp.status_code)


class ExpenseApi:
    """Client for the remote expense and auth service."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._transport = transport

    async def _request(self, method: str, path: str, token: str | None = None, json: dict | None = None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        started = time.monotonic()
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.request(method, path, headers=headers, json=json)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TransportError(f"Could not reach the expense service: {exc}") from exc
        except ValueError as exc:
            # request body could not be encoded as JSON
            raise ApiError(f"Could not send {method} {path}: {exc}") from exc

        latency_ms = round((time.monotonic() - started) * 1000, 1)
        logger.debug("%s %s -> %d", method, path, resp.status_code, extra={"latency_ms": latency_ms})
        if resp.is_error:
            raise _error_for(resp)
        try:
            return resp.json()
        except ValueError as exc:
            raise ApiError(f"Malformed response from {method} {path}", status_code=resp.status_code) from exc

    async def list_expenses(self, token: str) -> list[Expense]:
        data = await self._request("GET", "/expenses", token=token)
        try:
            return [Expense.from_api(row) for row in data]
        except (KeyError, TypeError, ValueError) as exc:
            raise ApiError(f"Malformed expense record: {exc}") from exc

    async def create_expense(self, token: str, draft: ExpenseDraft) -> Expense:
        data = await self._request("POST", "/expenses", token=token, json=draft.to_api())
        try:
            return Expense.from_api(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise ApiError(f"Malformed expense record: {exc}") from exc

    async def delete_expense(self, token: str, expense_id: str) -> None:
        await self._request("DELETE", f"/expenses/{expense_id}", token=token)

    async def login(self, email: str, password: str) -> dict:
        return await self._request("POST", "/auth/login", json={"email": email, "password": password})

    async def register(self, name: str, email: str, password: str) -> dict:
        return await self._request(
            "POST", "/auth/register", json={"email": email, "password": password, "name": name}
        )
