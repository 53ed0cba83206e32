"""Typed view of a chatbot rule's JSON `conditions` and `actions` blobs.

Conditions and actions are stored as JSON objects, e.g.
``{"hasActiveLoans": true}`` and ``{"assignToAdvisor": true}``. They are parsed
into small dataclasses; keys this version does not know about become
``UnknownCondition`` / ``UnknownAction`` and are ignored during evaluation so
that rules written for newer releases keep working.
"""

import json
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from escalafin.core.exceptions import RuleEvaluationError


@dataclass(frozen=True)
class HasActiveLoans:
    expected: bool


@dataclass(frozen=True)
class UnknownCondition:
    key: str
    value: Any


Condition = Union[HasActiveLoans, UnknownCondition]


@dataclass(frozen=True)
class AssignToAdvisor:
    pass


@dataclass(frozen=True)
class CreateNotification:
    pass


@dataclass(frozen=True)
class UnknownAction:
    key: str
    value: Any


Action = Union[AssignToAdvisor, CreateNotification, UnknownAction]


def _load_object(raw: Optional[str], field: str) -> dict:
    if raw is None or not str(raw).strip():
        return {}
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise RuleEvaluationError(f"Invalid JSON in rule {field}", {"error": str(e)}) from e
    if not isinstance(data, dict):
        raise RuleEvaluationError(f"Rule {field} must be a JSON object", {"value": raw[:200]})
    return data


def parse_conditions(raw: Optional[str]) -> List[Condition]:
    conditions: List[Condition] = []
    for key, value in _load_object(raw, "conditions").items():
        if key == "hasActiveLoans":
            if not isinstance(value, bool):
                raise RuleEvaluationError("hasActiveLoans must be a boolean", {"value": value})
            conditions.append(HasActiveLoans(expected=value))
        else:
            conditions.append(UnknownCondition(key=key, value=value))
    return conditions


def parse_actions(raw: Optional[str]) -> List[Action]:
    actions: List[Action] = []
    for key, value in _load_object(raw, "actions").items():
        # Flags set to false are switched off
        if key == "assignToAdvisor":
            if value:
                actions.append(AssignToAdvisor())
        elif key == "createNotification":
            if value:
                actions.append(CreateNotification())
        else:
            actions.append(UnknownAction(key=key, value=value))
    return actions
