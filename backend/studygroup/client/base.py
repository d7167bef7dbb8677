"""
Data access interface used by front-ends.

Records are plain dicts in the API's JSON shape (camelCase keys). Failures
raise the exceptions from `studygroup.core.errors`, whichever implementation
is in use.
"""

from abc import ABC, abstractmethod
from typing import Any

from studygroup.client.context import AuthContext

Record = dict[str, Any]


class DataService(ABC):
    """Users, topics, sessions, interactions and authentication."""

    def __init__(self, context: AuthContext) -> None:
        self.context = context

    @property
    def is_authenticated(self) -> bool:
        return self.context.is_authenticated

    # Users
    @abstractmethod
    async def list_users(self) -> list[Record]: ...

    @abstractmethod
    async def get_user_names(self) -> list[Record]: ...

    @abstractmethod
    async def create_user(self, data: Record) -> Record: ...

    @abstractmethod
    async def update_user(self, user_id: int, data: Record) -> Record: ...

    @abstractmethod
    async def delete_user(self, user_id: int) -> None: ...

    # Topics
    @abstractmethod
    async def list_topics(self) -> list[Record]: ...

    @abstractmethod
    async def get_topic(self, topic_id: int) -> Record: ...

    @abstractmethod
    async def create_topic(self, data: Record) -> Record: ...

    @abstractmethod
    async def update_topic(self, topic_id: int, data: Record) -> Record: ...

    @abstractmethod
    async def delete_topic(self, topic_id: int) -> None: ...

    @abstractmethod
    async def join_topic(self, topic_id: int) -> None: ...

    @abstractmethod
    async def leave_topic(self, topic_id: int) -> None: ...

    # Sessions
    @abstractmethod
    async def list_sessions(self) -> list[Record]: ...

    @abstractmethod
    async def get_session(self, session_id: int) -> Record: ...

    @abstractmethod
    async def create_session(self, data: Record) -> Record: ...

    @abstractmethod
    async def update_session(self, session_id: int, data: Record) -> Record: ...

    @abstractmethod
    async def delete_session(self, session_id: int) -> None: ...

    # Interactions
    @abstractmethod
    async def list_interactions(self, session_id: int | None = None) -> list[Record]: ...

    @abstractmethod
    async def create_interaction(self, data: Record) -> Record: ...

    @abstractmethod
    async def update_interaction(self, interaction_id: int, data: Record) -> Record: ...

    @abstractmethod
    async def delete_interaction(self, interaction_id: int) -> None: ...

    # Authentication
    @abstractmethod
    async def login(self, email: str, password: str) -> Record:
        """Sign in; on success the context holds the new session."""

    @abstractmethod
    async def signup(self, name: str, email: str, password: str) -> Record: ...

    @abstractmethod
    async def logout(self) -> None: ...

    @abstractmethod
    async def get_current_user(self) -> Record: ...

    @abstractmethod
    async def complete_profile(self, name: str, password: str) -> Record: ...

    @abstractmethod
    async def forgot_password(self, email: str) -> Record: ...

    @abstractmethod
    async def reset_password(self, token: str, password: str) -> Record: ...
