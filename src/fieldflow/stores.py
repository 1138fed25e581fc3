"""In-memory repositories for workflows, users, notifications, and handoff requests.

Each store exposes explicit ``get``/``put``/``list`` operations so the state
machine never touches a raw dict; a database-backed store can replace one
of these without changes to engine or manager code. Stores are not locked
themselves: callers serialize access through the engine lock.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Generic, TypeVar

from fieldflow.models import HandoffRequest, Notification, User, Workflow

T = TypeVar("T")


class _KeyedStore(Generic[T]):
    """Insertion-ordered id -> entity map."""

    def __init__(self) -> None:
        self._items: dict[str, T] = {}

    def get(self, item_id: str) -> T | None:
        return self._items.get(item_id)

    def put(self, item_id: str, item: T) -> None:
        self._items[item_id] = item

    def list(self) -> list[T]:
        return list(self._items.values())

    def clear(self) -> None:
        self._items.clear()

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items.values()))


class WorkflowStore(_KeyedStore[Workflow]):
    def put_workflow(self, workflow: Workflow) -> None:
        self.put(workflow.id, workflow)


class UserStore(_KeyedStore[User]):
    def put_user(self, user: User) -> None:
        self.put(user.id, user)

    def by_role(self, role_id: str) -> list[User]:
        return [u for u in self._items.values() if u.role == role_id]


class HandoffRequestStore(_KeyedStore[HandoffRequest]):
    def put_request(self, request: HandoffRequest) -> None:
        self.put(request.id, request)


class NotificationStore:
    """Per-user notification lists, append-only."""

    def __init__(self) -> None:
        self._by_user: dict[str, list[Notification]] = {}

    def append(self, notification: Notification) -> None:
        self._by_user.setdefault(notification.user_id, []).append(notification)

    def list_for(self, user_id: str) -> list[Notification]:
        return list(self._by_user.get(user_id, []))

    def get(self, user_id: str, notification_id: str) -> Notification | None:
        for n in self._by_user.get(user_id, []):
            if n.id == notification_id:
                return n
        return None

    def list(self) -> list[Notification]:
        return [n for items in self._by_user.values() for n in items]

    def clear(self) -> None:
        self._by_user.clear()

    def __contains__(self, notification_id: object) -> bool:
        return any(n.id == notification_id for n in self.list())

    def __len__(self) -> int:
        return sum(len(items) for items in self._by_user.values())
