"""
Client data layer.

    context = AuthContext()
    async with ApiDataService(context, "https://example.org/api") as service:
        await service.login("alice@learning.com", "password123")
        topics = await service.list_topics()
        if can(context, ResourceType.TOPIC, Action.EDIT, topics[0]):
            ...

MockDataService offers the same interface without a server.
"""

from studygroup.client.api import ApiDataService
from studygroup.client.base import DataService, Record
from studygroup.client.context import AuthContext, can
from studygroup.client.mock import MockDataService
from studygroup.permissions import Action, ResourceType

__all__ = [
    "Action",
    "ApiDataService",
    "AuthContext",
    "DataService",
    "MockDataService",
    "Record",
    "ResourceType",
    "can",
]
