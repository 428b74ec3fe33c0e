"""Queue webhook payloads for delivery."""

from __future__ import annotations

import logging
from uuid import uuid4

from sqlalchemy.orm import Session

from pushfeed.models import HookTask, Repository, Webhook
from pushfeed.services.payloads import Payload, to_json

logger = logging.getLogger(__name__)

HOOK_EVENT_CREATE = "create"
HOOK_EVENT_PUSH = "push"


def _wants(hook: Webhook, event: str) -> bool:
    if not hook.events_csv or hook.events_csv == "*":
        return True
    allowed = [e.strip() for e in hook.events_csv.split(",") if e.strip()]
    return event in allowed


def prepare_webhooks(
    session: Session, repo: Repository, event: str, payload: Payload
) -> list[HookTask]:
    """
    Queue ``payload`` for every active webhook of ``repo`` subscribed to
    ``event``. Delivery and retries belong to the delivery worker.
    """
    hooks = session.query(Webhook).filter_by(repo_id=repo.id, is_active=True).all()
    body = to_json(payload)
    tasks = [
        HookTask(
            repo_id=repo.id,
            hook_id=hook.id,
            uuid=str(uuid4()),
            url=hook.url,
            event_type=event,
            payload=body,
        )
        for hook in hooks
        if _wants(hook, event)
    ]
    if not tasks:
        return []
    session.add_all(tasks)
    session.flush()
    logger.debug("Queued %d %s hook task(s) for repository %s", len(tasks), event, repo.id)
    return tasks
