"""Ruter for the git hook."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from pushfeed.config import settings
from pushfeed.db import get_db
from pushfeed.errors import PushActionError, RepoNotExist, UserNotExist
from pushfeed.schemas import PushUpdateRequest, PushUpdateResponse
from pushfeed.services.keywords import default_patterns
from pushfeed.services.push import commit_repo_action
from pushfeed.utils import verify_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/internal", tags=["hooks"])


@router.post("/push", response_model=PushUpdateResponse)
async def push_update(
    request: Request,
    x_pushfeed_signature: str | None = Header(None),
    db: Session = Depends(get_db),
):
    """
    Called by the post-receive hook once per pushed ref.

    The body is signed with ``INTERNAL_TOKEN``. Only failures that mean the
    push could not be recorded are returned as errors; issue linking and
    webhook problems come back as ``warnings``.
    """
    body = await request.body()
    if settings.internal_token and not verify_signature(
        settings.internal_token, body, x_pushfeed_signature
    ):
        raise HTTPException(401, "Invalid signature")

    try:
        req = PushUpdateRequest.model_validate_json(body)
    except ValidationError as exc:
        raise HTTPException(422, str(exc)) from exc

    patterns = getattr(request.app.state, "keyword_patterns", None) or default_patterns()
    try:
        result = commit_repo_action(db, req.to_options(), patterns)
    except PushActionError as exc:
        if isinstance(exc.cause, (UserNotExist, RepoNotExist)):
            raise HTTPException(404, str(exc)) from exc
        logger.error("CommitRepoAction failed: %s", exc)
        raise HTTPException(500, str(exc)) from exc

    return PushUpdateResponse(
        op_type=int(result.op_type),
        ref_name=result.ref_name,
        is_new_branch=result.is_new_branch,
        feed_rows=len(result.actions),
        hook_events=result.hook_events,
        warnings=result.warnings,
    )
