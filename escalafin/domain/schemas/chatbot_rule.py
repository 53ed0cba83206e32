"""Pydantic schemas for chatbot rule administration."""

import json
import re
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from escalafin.config import get_settings
from escalafin.core.exceptions import RuleEvaluationError
from escalafin.domain.enums import TriggerType
from escalafin.domain.rules import parse_actions, parse_conditions

settings = get_settings()


def check_regex(trigger_type: Optional[TriggerType], trigger: Optional[str]) -> None:
    if trigger_type != TriggerType.REGEX or trigger is None:
        return
    if len(trigger) > settings.MAX_REGEX_PATTERN_LENGTH:
        raise ValueError(f"regex pattern longer than {settings.MAX_REGEX_PATTERN_LENGTH} characters")
    try:
        re.compile(trigger)
    except re.error as e:
        raise ValueError(f"invalid regex: {e}") from e


def _check_blobs(conditions: Optional[Dict[str, Any]], actions: Optional[Dict[str, Any]]) -> None:
    try:
        if conditions is not None:
            parse_conditions(json.dumps(conditions))
        if actions is not None:
            parse_actions(json.dumps(actions))
    except RuleEvaluationError as e:
        raise ValueError(e.message) from e


class ChatbotRuleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    is_active: bool = True
    priority: int = 0
    trigger_type: TriggerType = TriggerType.KEYWORD
    trigger: str = Field(min_length=1)
    conditions: Optional[Dict[str, Any]] = None
    actions: Optional[Dict[str, Any]] = None
    response: str = Field(min_length=1)

    @model_validator(mode="after")
    def validate_rule(self):
        check_regex(self.trigger_type, self.trigger)
        _check_blobs(self.conditions, self.actions)
        return self


class ChatbotRuleUpdate(BaseModel):
    name: Optional[str] = None
    is_active: Optional[bool] = None
    priority: Optional[int] = None
    trigger_type: Optional[TriggerType] = None
    trigger: Optional[str] = None
    conditions: Optional[Dict[str, Any]] = None
    actions: Optional[Dict[str, Any]] = None
    response: Optional[str] = None

    @model_validator(mode="after")
    def validate_rule(self):
        _check_blobs(self.conditions, self.actions)
        return self


class ChatbotRuleRead(BaseModel):
    id: int
    name: str
    is_active: bool
    priority: int
    trigger_type: TriggerType
    trigger: str
    conditions: Optional[Dict[str, Any]] = None
    actions: Optional[Dict[str, Any]] = None
    response: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("conditions", "actions", mode="before")
    @classmethod
    def load_json(cls, value):
        # Stored as JSON text; a malformed blob is shown as empty
        if value is None or isinstance(value, dict):
            return value
        try:
            data = json.loads(value)
        except (TypeError, ValueError):
            return None
        return data if isinstance(data, dict) else None
