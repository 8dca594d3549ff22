"""Event subscription model — one handler wired into the dispatcher."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class EventSubscription(BaseModel):
    """Records a registered ``(event, owner, method, priority)`` binding.

    ``owner`` is the qualified class name of the extension instance that
    declared the subscription.
    """

    model_config = ConfigDict(frozen=True)

    event_name: str
    owner: str
    method: str
    priority: int = 0
