"""Workflow engine value objects.

Case variables are an explicit tagged union. The caller picks the variant,
and the variant decides the wire type; values are never sniffed to guess
whether they look like numbers.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Union


@dataclass(frozen=True)
class WorkflowCredentials:
    """Credentials for one workflow engine identity."""

    username: str
    password: str = field(repr=False)

    @property
    def identity(self) -> str:
        """Cache key for sessions opened with these credentials."""
        return self.username


@dataclass(frozen=True)
class WorkflowSession:
    """An authenticated engine session, passed explicitly to every call.

    Attributes:
        username: Identity the session belongs to.
        cookies: Session cookies issued by the engine.
        api_token: CSRF/API token echoed on each request, if issued.
        user_id: Engine-side user id, if known.
        opened_at: When the session was opened (UTC).
    """

    username: str
    cookies: dict[str, str] = field(default_factory=dict, repr=False)
    api_token: str | None = field(default=None, repr=False)
    user_id: str | None = None
    opened_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class HumanTaskState(Enum):
    READY = "ready"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: str | None) -> HumanTaskState:
        try:
            return cls((raw or "").lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class HumanTask:
    """A unit of work inside a case awaiting action."""

    id: str
    name: str
    state: HumanTaskState
    case_id: str

    @property
    def is_ready(self) -> bool:
        return self.state is HumanTaskState.READY


def pick_work_item(tasks: list[HumanTask]) -> HumanTask | None:
    """Choose the work item to complete: first ready task, else the first task."""
    if not tasks:
        return None
    return next((t for t in tasks if t.is_ready), tasks[0])


@dataclass(frozen=True)
class NumberVar:
    value: int | float
    type_name: ClassVar[str] = "java.lang.Double"

    def to_wire(self) -> int | float:
        return self.value

    @property
    def wire_type(self) -> str:
        return "java.lang.Long" if isinstance(self.value, int) else self.type_name


@dataclass(frozen=True)
class BoolVar:
    value: bool
    type_name: ClassVar[str] = "java.lang.Boolean"

    def to_wire(self) -> bool:
        return self.value

    @property
    def wire_type(self) -> str:
        return self.type_name


@dataclass(frozen=True)
class StringVar:
    value: str
    type_name: ClassVar[str] = "java.lang.String"

    def to_wire(self) -> str:
        return self.value

    @property
    def wire_type(self) -> str:
        return self.type_name


@dataclass(frozen=True)
class JsonVar:
    """Structured value carried as a JSON string on the engine side."""

    value: Any
    type_name: ClassVar[str] = "java.lang.String"

    def to_wire(self) -> str:
        return json.dumps(self.value, separators=(",", ":"), default=str)

    @property
    def wire_type(self) -> str:
        return self.type_name


CaseVariable = Union[NumberVar, BoolVar, StringVar, JsonVar]

_NUMBER_TYPES = frozenset(
    {"java.lang.Integer", "java.lang.Long", "java.lang.Double", "java.lang.Float"}
)
_INTEGRAL_TYPES = frozenset({"java.lang.Integer", "java.lang.Long"})


def case_variable_from_wire(type_name: str, raw: Any) -> CaseVariable:
    """Decode a variable read from the engine using its declared type.

    Strings stay strings: a JSON-looking string is only decoded when the
    caller asks for it through ``JsonVar(json.loads(var.value))``.
    """
    if type_name in _NUMBER_TYPES:
        if raw is None or raw == "":
            return NumberVar(0)
        number = float(raw)
        if type_name in _INTEGRAL_TYPES:
            return NumberVar(int(number))
        return NumberVar(number)
    if type_name == BoolVar.type_name:
        if isinstance(raw, bool):
            return BoolVar(raw)
        return BoolVar(str(raw).lower() == "true")
    return StringVar("" if raw is None else str(raw))
