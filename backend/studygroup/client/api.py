"""DataService backed by the REST API over httpx."""

import logging
from typing import Any

import httpx

from studygroup.client.base import DataService, Record
from studygroup.client.context import AuthContext
from studygroup.core.errors import (
    ERRORS_BY_STATUS,
    AppException,
    BusinessRuleError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000/api"


def error_from_response(response: httpx.Response) -> AppException:
    """Turn an `{"error", "details"?}` body back into the matching exception."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("error") or f"HTTP {response.status_code}"
    details = body.get("details")

    if response.status_code == httpx.codes.BAD_REQUEST:
        if message.startswith("Validation failed"):
            return ValidationError(message, details=details)
        return BusinessRuleError(message, details=details)

    error_cls = ERRORS_BY_STATUS.get(response.status_code)
    if error_cls is None:
        error = AppException(message, details=details)
        error.status_code = response.status_code
        return error
    return error_cls(message, details=details)


class ApiDataService(DataService):
    """
    Client for the study group API.

    Pass `transport` to talk to an in-process app (httpx.ASGITransport) or a
    mock transport. A 401 from any call signs the context out.
    """

    def __init__(
        self,
        context: AuthContext,
        base_url: str = DEFAULT_BASE_URL,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        super().__init__(context)
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            transport=transport,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiDataService":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        response = await self._client.request(
            method,
            path,
            json=json,
            params=params,
            headers=self.context.auth_headers(),
        )
        if response.is_error:
            if response.status_code == httpx.codes.UNAUTHORIZED:
                self.context.clear()
            error = error_from_response(response)
            logger.debug("%s %s failed: %d %s", method, path, response.status_code, error.message)
            raise error
        if not response.content:
            return None
        return response.json()

    def _start_session(self, payload: Record) -> Record:
        self.context.set_session(
            payload["user"],
            payload["accessToken"],
            payload.get("refreshToken"),
        )
        return payload

    # Users

    async def list_users(self) -> list[Record]:
        return await self._request("GET", "/users")

    async def get_user_names(self) -> list[Record]:
        return await self._request("GET", "/users/names")

    async def create_user(self, data: Record) -> Record:
        return await self._request("POST", "/users", json=data)

    async def update_user(self, user_id: int, data: Record) -> Record:
        user = await self._request("PUT", f"/users/{user_id}", json=data)
        if self.context.user is not None and self.context.user["id"] == user_id:
            self.context.user = user
        return user

    async def delete_user(self, user_id: int) -> None:
        await self._request("DELETE", f"/users/{user_id}")

    # Topics

    async def list_topics(self) -> list[Record]:
        return await self._request("GET", "/topics")

    async def get_topic(self, topic_id: int) -> Record:
        return await self._request("GET", f"/topics/{topic_id}")

    async def create_topic(self, data: Record) -> Record:
        return await self._request("POST", "/topics", json=data)

    async def update_topic(self, topic_id: int, data: Record) -> Record:
        return await self._request("PUT", f"/topics/{topic_id}", json=data)

    async def delete_topic(self, topic_id: int) -> None:
        await self._request("DELETE", f"/topics/{topic_id}")

    async def join_topic(self, topic_id: int) -> None:
        await self._request("POST", f"/topics/{topic_id}/join")

    async def leave_topic(self, topic_id: int) -> None:
        await self._request("DELETE", f"/topics/{topic_id}/leave")

    # Sessions

    async def list_sessions(self) -> list[Record]:
        return await self._request("GET", "/sessions")

    async def get_session(self, session_id: int) -> Record:
        return await self._request("GET", f"/sessions/{session_id}")

    async def create_session(self, data: Record) -> Record:
        return await self._request("POST", "/sessions", json=data)

    async def update_session(self, session_id: int, data: Record) -> Record:
        return await self._request("PUT", f"/sessions/{session_id}", json=data)

    async def delete_session(self, session_id: int) -> None:
        await self._request("DELETE", f"/sessions/{session_id}")

    # Interactions

    async def list_interactions(self, session_id: int | None = None) -> list[Record]:
        params = {"sessionId": session_id} if session_id is not None else None
        return await self._request("GET", "/interactions", params=params)

    async def create_interaction(self, data: Record) -> Record:
        return await self._request("POST", "/interactions", json=data)

    async def update_interaction(self, interaction_id: int, data: Record) -> Record:
        return await self._request("PUT", f"/interactions/{interaction_id}", json=data)

    async def delete_interaction(self, interaction_id: int) -> None:
        await self._request("DELETE", f"/interactions/{interaction_id}")

    # Authentication

    async def login(self, email: str, password: str) -> Record:
        payload = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        return self._start_session(payload)

    async def signup(self, name: str, email: str, password: str) -> Record:
        payload = await self._request(
            "POST",
            "/auth/signup",
            json={"name": name, "email": email, "password": password},
        )
        return self._start_session(payload)

    async def google_login(self, credential: str) -> Record:
        payload = await self._request("POST", "/auth/google", json={"credential": credential})
        return self._start_session(payload)

    async def refresh(self) -> Record:
        """Swap the stored refresh token for a new pair."""
        if self.context.refresh_token is None:
            raise BusinessRuleError("No refresh token available")
        payload = await self._request(
            "POST", "/auth/refresh", json={"refreshToken": self.context.refresh_token}
        )
        self.context.access_token = payload["accessToken"]
        self.context.refresh_token = payload["refreshToken"]
        return payload

    async def logout(self) -> None:
        try:
            await self._request("POST", "/auth/logout")
        finally:
            self.context.clear()

    async def get_current_user(self) -> Record:
        user = await self._request("GET", "/auth/me")
        self.context.user = user
        return user

    async def complete_profile(self, name: str, password: str) -> Record:
        payload = await self._request(
            "POST", "/auth/complete-profile", json={"name": name, "password": password}
        )
        return self._start_session(payload)

    async def forgot_password(self, email: str) -> Record:
        return await self._request("POST", "/auth/forgot-password", json={"email": email})

    async def reset_password(self, token: str, password: str) -> Record:
        return await self._request(
            "POST", "/auth/reset-password", json={"token": token, "password": password}
        )
