"""In-memory workflow engine for development and tests.

Simulates just enough of the coverage process for the core:

- each case runs a fixed sequence of human tasks; completing one makes
  the next one ready
- the first human task of a new case only appears after
  ``ready_after_polls`` calls to list_human_tasks
- completing the first task with a ``coverageRequestsData`` variable
  expands the JSON array into one coverage task per entry
- variables are stored in wire form and decoded by declared type on read

Failure injection: ``fail_next(operation)`` makes the next call(s) of an
operation raise ExternalSystemUnavailableError, ``fail_task_ids`` makes
coverage-task updates fail for specific ids, ``unavailable`` fails every
call, ``rejected_usernames`` fails authentication and ``expire_sessions()``
makes every session issued so far fail with a 401.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import uuid
from collections import Counter
from dataclasses import dataclass, field, replace

from ongflow.application.ports.workflow_gateway import WorkflowGatewayProtocol
from ongflow.domain.errors import (
    AuthenticationFailedError,
    ExternalSystemUnavailableError,
)
from ongflow.domain.models.task import CoverageTask, TaskStatus
from ongflow.domain.models.workflow import (
    CaseVariable,
    HumanTask,
    HumanTaskState,
    WorkflowCredentials,
    WorkflowSession,
    case_variable_from_wire,
)

PROCESS_STEPS: tuple[str, ...] = (
    "Register coverage requests",
    "Assign commitments",
    "Execute project",
    "Close project",
)


@dataclass
class _StubCase:
    id: str
    tasks: list[HumanTask] = field(default_factory=list)
    variables: dict[str, tuple[str, object]] = field(default_factory=dict)
    polls: int = 0


class WorkflowGatewayStub(WorkflowGatewayProtocol):
    """In-memory implementation of WorkflowGatewayProtocol.

    Attributes:
        ready_after_polls: list_human_tasks calls on a new case that return
            nothing before the first task appears.
        latency: Seconds awaited at the start of every call, to let
            concurrent callers interleave in tests.
        completed_task_ids: Human tasks completed, in call order.
        status_updates: (coverage task id, status) updates, in call order.
        calls: Number of calls per operation.
    """

    def __init__(self, ready_after_polls: int = 0, latency: float = 0.0) -> None:
        self.ready_after_polls = ready_after_polls
        self.latency = latency
        self.unavailable = False
        self.rejected_usernames: set[str] = set()
        self.fail_task_ids: set[str] = set()
        self._pending_failures: Counter[str] = Counter()
        self._issued_tokens: set[str] = set()
        self._expired_tokens: set[str] = set()

        self._cases: dict[str, _StubCase] = {}
        self._coverage: dict[str, CoverageTask] = {}
        self._case_ids = itertools.count(1001)
        self._task_ids = itertools.count(20001)
        self._coverage_ids = itertools.count(1)

        self.completed_task_ids: list[str] = []
        self.status_updates: list[tuple[str, TaskStatus]] = []
        self.assignments: list[tuple[str, str]] = []
        self.calls: Counter[str] = Counter()

    def fail_next(self, operation: str, times: int = 1) -> None:
        """Make the next ``times`` calls of ``operation`` fail."""
        self._pending_failures[operation] += times

    def expire_sessions(self) -> None:
        """Reject every session issued so far with a 401 on its next use."""
        self._expired_tokens.update(self._issued_tokens)

    @property
    def case_count(self) -> int:
        return len(self._cases)

    async def _enter(
        self, operation: str, session: WorkflowSession | None = None
    ) -> None:
        self.calls[operation] += 1
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.unavailable:
            raise ExternalSystemUnavailableError(operation, "engine unavailable")
        if session is not None and session.api_token in self._expired_tokens:
            raise AuthenticationFailedError(session.username, status_code=401)
        if self._pending_failures[operation] > 0:
            self._pending_failures[operation] -= 1
            raise ExternalSystemUnavailableError(operation, "injected failure")

    def _case(self, operation: str, case_id: str) -> _StubCase:
        case = self._cases.get(case_id)
        if case is None:
            raise ExternalSystemUnavailableError(
                operation,
                f"case {case_id} not found",
                status_code=404,
                retryable=False,
            )
        return case

    def _new_human_task(self, case_id: str, step: int) -> HumanTask:
        return HumanTask(
            id=str(next(self._task_ids)),
            name=PROCESS_STEPS[step],
            state=HumanTaskState.READY,
            case_id=case_id,
        )

    async def authenticate(self, credentials: WorkflowCredentials) -> WorkflowSession:
        await self._enter("authenticate")
        if credentials.username in self.rejected_usernames:
            raise AuthenticationFailedError(credentials.username, status_code=401)
        token = uuid.uuid4().hex
        self._issued_tokens.add(token)
        return WorkflowSession(
            username=credentials.username,
            cookies={"JSESSIONID": uuid.uuid4().hex},
            api_token=token,
            user_id="1",
        )

    async def create_case(
        self,
        session: WorkflowSession,
        variables: dict[str, CaseVariable] | None = None,
    ) -> str:
        await self._enter("create_case", session)
        case = _StubCase(id=str(next(self._case_ids)))
        for name, variable in (variables or {}).items():
            case.variables[name] = (variable.wire_type, variable.to_wire())
        self._cases[case.id] = case
        return case.id

    async def list_human_tasks(
        self, session: WorkflowSession, case_id: str
    ) -> list[HumanTask]:
        await self._enter("list_human_tasks", session)
        case = self._case("list_human_tasks", case_id)
        if not case.tasks:
            case.polls += 1
            if case.polls <= self.ready_after_polls:
                return []
            case.tasks.append(self._new_human_task(case_id, 0))
        return list(case.tasks)

    async def read_case_variables(
        self, session: WorkflowSession, case_id: str
    ) -> dict[str, CaseVariable]:
        await self._enter("read_case_variables", session)
        case = self._case("read_case_variables", case_id)
        return {
            name: case_variable_from_wire(type_name, raw)
            for name, (type_name, raw) in case.variables.items()
        }

    async def write_case_variable(
        self,
        session: WorkflowSession,
        case_id: str,
        name: str,
        variable: CaseVariable,
    ) -> None:
        await self._enter("write_case_variable", session)
        case = self._case("write_case_variable", case_id)
        case.variables[name] = (variable.wire_type, variable.to_wire())

    async def assign_task(
        self, session: WorkflowSession, task_id: str, user_id: str
    ) -> None:
        await self._enter("assign_task", session)
        self._find_human_task("assign_task", task_id)
        self.assignments.append((task_id, user_id))

    async def complete_task(
        self,
        session: WorkflowSession,
        task_id: str,
        variables: dict[str, CaseVariable] | None = None,
    ) -> None:
        await self._enter("complete_task", session)
        case, index = self._find_human_task("complete_task", task_id)
        task = case.tasks[index]
        if task.state is not HumanTaskState.READY:
            raise ExternalSystemUnavailableError(
                "complete_task",
                f"human task {task_id} is {task.state.value}",
                status_code=409,
                retryable=False,
            )
        for name, variable in (variables or {}).items():
            case.variables[name] = (variable.wire_type, variable.to_wire())

        case.tasks[index] = replace(task, state=HumanTaskState.COMPLETED)
        self.completed_task_ids.append(task_id)
        if index == 0:
            self._expand_coverage_requests(case)
        if index + 1 < len(PROCESS_STEPS):
            case.tasks.append(self._new_human_task(case.id, index + 1))

    def _find_human_task(self, operation: str, task_id: str) -> tuple[_StubCase, int]:
        for case in self._cases.values():
            for index, task in enumerate(case.tasks):
                if task.id == task_id:
                    return case, index
        raise ExternalSystemUnavailableError(
            operation,
            f"human task {task_id} not found",
            status_code=404,
            retryable=False,
        )

    def _expand_coverage_requests(self, case: _StubCase) -> None:
        raw = case.variables.get("coverageRequestsData")
        if raw is None:
            return
        for index, entry in enumerate(json.loads(raw[1])):
            task_id = f"cov-{next(self._coverage_ids)}"
            self._coverage[task_id] = CoverageTask(
                id=task_id,
                project_id=int(entry["projectId"]),
                case_id=case.id,
                index=index,
                title=entry["title"],
            )

    async def list_coverage_tasks(
        self, session: WorkflowSession, project_id: int
    ) -> list[CoverageTask]:
        await self._enter("list_coverage_tasks", session)
        return sorted(
            (t for t in self._coverage.values() if t.project_id == project_id),
            key=lambda t: (t.case_id, t.index),
        )

    async def get_coverage_task(
        self, session: WorkflowSession, task_id: str
    ) -> CoverageTask | None:
        await self._enter("get_coverage_task", session)
        return self._coverage.get(task_id)

    def _coverage_task(self, operation: str, task_id: str) -> CoverageTask:
        task = self._coverage.get(task_id)
        if task is None:
            raise ExternalSystemUnavailableError(
                operation,
                f"coverage task {task_id} not found",
                status_code=404,
                retryable=False,
            )
        return task

    async def update_coverage_task_status(
        self, session: WorkflowSession, task_id: str, status: TaskStatus
    ) -> None:
        await self._enter("update_coverage_task_status", session)
        if task_id in self.fail_task_ids:
            raise ExternalSystemUnavailableError(
                "update_coverage_task_status", f"injected failure for {task_id}"
            )
        task = self._coverage_task("update_coverage_task_status", task_id)
        self._coverage[task_id] = replace(task, status=status)
        self.status_updates.append((task_id, status))

    async def assign_coverage_task(
        self, session: WorkflowSession, task_id: str, organization_id: int
    ) -> None:
        await self._enter("assign_coverage_task", session)
        task = self._coverage_task("assign_coverage_task", task_id)
        self._coverage[task_id] = replace(task, assignee=organization_id)
