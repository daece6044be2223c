"""
Realtime event names.

Event identifiers are shared with browser clients and keep their camelCase
spelling on the wire.
"""

from enum import Enum


class ClientEvent(str, Enum):
    """Messages a connected client may send as ``{"event": ..., "data": ...}``."""

    AUTHENTICATE = "authenticate"
    JOIN_PROJECT = "joinProject"
    LEAVE_PROJECT = "leaveProject"
    JOIN_WIKI_PAGE = "joinWikiPage"
    LEAVE_WIKI_PAGE = "leaveWikiPage"
    UPDATE_PRESENCE = "updatePresence"
    START_EDITING_WIKI = "startEditingWiki"
    STOP_EDITING_WIKI = "stopEditingWiki"
    UPDATE_TASK = "updateTask"
    CREATE_TASK = "createTask"
    DELETE_TASK = "deleteTask"


class ServerEvent(str, Enum):
    """Events pushed to clients."""

    USER_JOINED = "userJoined"
    USER_LEFT = "userLeft"
    USER_PRESENCE = "userPresence"
    TASK_UPDATED = "taskUpdated"
    TASK_CREATED = "taskCreated"
    TASK_DELETED = "taskDeleted"
    PROJECT_UPDATED = "projectUpdated"
    WIKI_PAGE_UPDATED = "wikiPageUpdated"
    WIKI_PAGE_EDITING = "wikiPageEditing"
    WIKI_PAGE_STOPPED_EDITING = "wikiPageStoppedEditing"
    NOTIFICATION = "notification"
    COMMENT_ADDED = "commentAdded"
    EPIC_CREATED = "epicCreated"
    EPIC_UPDATED = "epicUpdated"
    EPIC_DELETED = "epicDeleted"
    MILESTONE_CREATED = "milestoneCreated"
    MILESTONE_UPDATED = "milestoneUpdated"
    MILESTONE_DELETED = "milestoneDeleted"
    TASK_EPIC_ASSIGNED = "taskEpicAssigned"
    TASK_MILESTONE_ASSIGNED = "taskMilestoneAssigned"
    TASK_POINTS_UPDATED = "taskPointsUpdated"
    TASK_COMMENT_ADDED = "taskCommentAdded"


SERVER_EVENT_NAMES = frozenset(event.value for event in ServerEvent)


def project_room(project_id: str) -> str:
    return f"project:{project_id}"


def wiki_room(page_id: str) -> str:
    return f"wiki:{page_id}"
