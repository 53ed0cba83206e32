"""Chatbot rules API routes: admin CRUD over auto-response rules."""

import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, status

from escalafin.core.exceptions import EntityNotFoundException
from escalafin.interfaces.api.deps import require_admin
from escalafin.interfaces.deps import get_chatbot_rule_repository
from escalafin.domain.models.user import User
from escalafin.domain.schemas.chatbot_rule import (
    ChatbotRuleCreate,
    ChatbotRuleRead,
    ChatbotRuleUpdate,
    check_regex,
)
from escalafin.infrastructure.repositories.chatbot_rule_repository import SQLAlchemyChatbotRuleRepository

router = APIRouter(prefix="/api/chatbot-rules", tags=["Chatbot Rules"])


def _to_columns(data: Dict[str, Any]) -> Dict[str, Any]:
    # conditions/actions are stored as JSON text
    for key in ("conditions", "actions"):
        if key in data and data[key] is not None:
            data[key] = json.dumps(data[key])
    return data


def _get_or_404(repo: SQLAlchemyChatbotRuleRepository, rule_id: int):
    rule = repo.get_by_id(rule_id)
    if rule is None:
        raise EntityNotFoundException("Regla no encontrada", {"rule_id": rule_id})
    return rule


@router.get("", response_model=list[ChatbotRuleRead])
def list_rules(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    repo: SQLAlchemyChatbotRuleRepository = Depends(get_chatbot_rule_repository),
    admin: User = Depends(require_admin),
):
    return [ChatbotRuleRead.model_validate(r) for r in repo.list(skip=skip, limit=limit)]


@router.get("/{rule_id}", response_model=ChatbotRuleRead)
def get_rule(
    rule_id: int,
    repo: SQLAlchemyChatbotRuleRepository = Depends(get_chatbot_rule_repository),
    admin: User = Depends(require_admin),
):
    return ChatbotRuleRead.model_validate(_get_or_404(repo, rule_id))


@router.post("", response_model=ChatbotRuleRead, status_code=status.HTTP_201_CREATED)
def create_rule(
    body: ChatbotRuleCreate,
    repo: SQLAlchemyChatbotRuleRepository = Depends(get_chatbot_rule_repository),
    admin: User = Depends(require_admin),
):
    rule = repo.create(_to_columns(body.model_dump()))
    return ChatbotRuleRead.model_validate(rule)


@router.put("/{rule_id}", response_model=ChatbotRuleRead)
def update_rule(
    rule_id: int,
    body: ChatbotRuleUpdate,
    repo: SQLAlchemyChatbotRuleRepository = Depends(get_chatbot_rule_repository),
    admin: User = Depends(require_admin),
):
    rule = _get_or_404(repo, rule_id)
    data = body.model_dump(exclude_unset=True)

    # The trigger is re-checked against the merged rule
    try:
        check_regex(data.get("trigger_type", rule.trigger_type), data.get("trigger", rule.trigger))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    rule = repo.update(rule, _to_columns(data))
    return ChatbotRuleRead.model_validate(rule)


@router.delete("/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rule(
    rule_id: int,
    repo: SQLAlchemyChatbotRuleRepository = Depends(get_chatbot_rule_repository),
    admin: User = Depends(require_admin),
):
    _get_or_404(repo, rule_id)
    repo.delete(rule_id)
