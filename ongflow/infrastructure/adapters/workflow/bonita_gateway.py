"""Bonita workflow engine gateway over httpx.

Implements WorkflowGatewayProtocol against the Bonita REST API:

- POST /bonita/loginservice (form login; cookies carry the session and
  the X-Bonita-API-Token value echoed as a header on later calls)
- /bonita/API/bpm/... for processes, cases, human tasks and case variables
- /bonita/API/extension/... for the coverage-task REST extensions
  deployed with the coverage process

The adapter holds no per-user state. Sessions are passed to every call and
turned into explicit Cookie and token headers, so one instance is shared
by all requests.

Error mapping:
- httpx.TimeoutException, httpx.RequestError, 5xx -> ExternalSystemUnavailableError
- 401 / 403 -> AuthenticationFailedError
- other 4xx -> ExternalSystemUnavailableError(retryable=False)
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

import httpx
from structlog import get_logger

from ongflow.application.ports.workflow_gateway import WorkflowGatewayProtocol
from ongflow.config.workflow_config import WorkflowEngineConfig
from ongflow.domain.errors import (
    AuthenticationFailedError,
    ExternalSystemUnavailableError,
)
from ongflow.domain.models.task import CoverageTask, TaskStatus
from ongflow.domain.models.workflow import (
    BoolVar,
    CaseVariable,
    HumanTask,
    HumanTaskState,
    WorkflowCredentials,
    WorkflowSession,
    case_variable_from_wire,
)

logger = get_logger(__name__)

API_TOKEN_COOKIE = "X-Bonita-API-Token"
API_TOKEN_HEADER = "X-Bonita-API-Token"
PAGE_SIZE = 100


def _wire_string(variable: CaseVariable) -> str:
    """Case variable values are sent as strings on PUT."""
    value = variable.to_wire()
    if isinstance(variable, BoolVar):
        return "true" if value else "false"
    return str(value)


def _parse_status(raw: Any) -> TaskStatus:
    try:
        return TaskStatus(str(raw or "todo").lower())
    except ValueError:
        return TaskStatus.TODO


def _parse_coverage_task(
    raw: dict[str, Any], project_id: int | None = None
) -> CoverageTask:
    assignee = raw.get("organizationId", raw.get("assignee"))
    return CoverageTask(
        id=str(raw["id"]),
        project_id=int(raw.get("projectId", project_id or 0)),
        case_id=str(raw.get("caseId", "")),
        index=int(raw.get("index", 0)),
        title=str(raw.get("title", "")),
        status=_parse_status(raw.get("status")),
        assignee=int(assignee) if assignee not in (None, "") else None,
    )


class BonitaWorkflowGateway(WorkflowGatewayProtocol):
    """Workflow gateway for a Bonita engine.

    Example:
        >>> gateway = BonitaWorkflowGateway(load_workflow_config())
        >>> session = await gateway.authenticate(config.credentials)
        >>> case_id = await gateway.create_case(session)
    """

    def __init__(
        self,
        config: WorkflowEngineConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            config: Engine URL, timeout and process name.
            client: Optional preconfigured client (tests pass one built on
                httpx.MockTransport).
        """
        self._config = config
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
        )
        self._process_id: str | None = None

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, session: WorkflowSession | None) -> dict[str, str]:
        if session is None:
            return {}
        headers: dict[str, str] = {}
        if session.cookies:
            headers["Cookie"] = "; ".join(
                f"{name}={value}" for name, value in session.cookies.items()
            )
        if session.api_token:
            headers[API_TOKEN_HEADER] = session.api_token
        return headers

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        session: WorkflowSession | None = None,
        username: str | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request and map transport and status failures."""
        try:
            response = await self._client.request(
                method, path, headers=self._headers(session), **kwargs
            )
        except httpx.TimeoutException as exc:
            logger.warning("workflow_call_timeout", operation=operation, path=path)
            raise ExternalSystemUnavailableError(
                operation, f"timed out after {self._config.timeout_seconds}s"
            ) from exc
        except httpx.RequestError as exc:
            logger.warning(
                "workflow_call_failed", operation=operation, path=path, error=str(exc)
            )
            raise ExternalSystemUnavailableError(
                operation, str(exc) or type(exc).__name__
            ) from exc

        status = response.status_code
        if status in (401, 403):
            who = username or (session.username if session else "unknown")
            raise AuthenticationFailedError(who, status_code=status)
        if status >= 500:
            raise ExternalSystemUnavailableError(
                operation, f"HTTP {status}", status_code=status
            )
        if status >= 400:
            raise ExternalSystemUnavailableError(
                operation,
                f"HTTP {status}: {response.text[:200]}",
                status_code=status,
                retryable=False,
            )
        return response

    @staticmethod
    def _json(operation: str, response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ExternalSystemUnavailableError(
                operation, "malformed JSON response", status_code=response.status_code
            ) from exc

    async def authenticate(self, credentials: WorkflowCredentials) -> WorkflowSession:
        response = await self._request(
            "authenticate",
            "POST",
            "/bonita/loginservice",
            username=credentials.username,
            data={
                "username": credentials.username,
                "password": credentials.password,
                "redirect": "false",
            },
        )
        cookies = {name: value for name, value in response.cookies.items()}
        if not cookies:
            raise AuthenticationFailedError(
                credentials.username, status_code=response.status_code
            )

        session = WorkflowSession(
            username=credentials.username,
            cookies=cookies,
            api_token=cookies.get(API_TOKEN_COOKIE),
        )
        info_response = await self._request(
            "authenticate",
            "GET",
            "/bonita/API/system/session/unusedid",
            session=session,
        )
        info = self._json("authenticate", info_response) or {}
        user_id = info.get("user_id")
        logger.debug("bonita_login", username=credentials.username, user_id=user_id)
        return replace(session, user_id=str(user_id) if user_id else None)

    async def _resolve_process_id(self, session: WorkflowSession) -> str:
        if self._process_id is not None:
            return self._process_id
        response = await self._request(
            "create_case",
            "GET",
            "/bonita/API/bpm/process",
            session=session,
            params={"p": 0, "c": 1, "f": f"name={self._config.process_name}"},
        )
        processes = self._json("create_case", response) or []
        if not processes:
            raise ExternalSystemUnavailableError(
                "create_case",
                f"process {self._config.process_name} is not deployed",
                retryable=False,
            )
        self._process_id = str(processes[0]["id"])
        return self._process_id

    async def create_case(
        self,
        session: WorkflowSession,
        variables: dict[str, CaseVariable] | None = None,
    ) -> str:
        process_id = await self._resolve_process_id(session)
        body = {name: var.to_wire() for name, var in (variables or {}).items()}
        response = await self._request(
            "create_case",
            "POST",
            f"/bonita/API/bpm/process/{process_id}/instantiation",
            session=session,
            json=body,
        )
        payload = self._json("create_case", response) or {}
        case_id = payload.get("caseId")
        if case_id is None:
            raise ExternalSystemUnavailableError(
                "create_case", "instantiation returned no caseId", retryable=False
            )
        logger.info("bonita_case_created", case_id=str(case_id), process_id=process_id)
        return str(case_id)

    async def list_human_tasks(
        self, session: WorkflowSession, case_id: str
    ) -> list[HumanTask]:
        response = await self._request(
            "list_human_tasks",
            "GET",
            "/bonita/API/bpm/humanTask",
            session=session,
            params={"p": 0, "c": PAGE_SIZE, "f": f"caseId={case_id}"},
        )
        return [
            HumanTask(
                id=str(raw["id"]),
                name=str(raw.get("name", "")),
                state=HumanTaskState.parse(raw.get("state")),
                case_id=str(raw.get("caseId", case_id)),
            )
            for raw in self._json("list_human_tasks", response) or []
        ]

    async def read_case_variables(
        self, session: WorkflowSession, case_id: str
    ) -> dict[str, CaseVariable]:
        response = await self._request(
            "read_case_variables",
            "GET",
            "/bonita/API/bpm/caseVariable",
            session=session,
            params={"p": 0, "c": PAGE_SIZE, "f": f"case_id={case_id}"},
        )
        return {
            raw["name"]: case_variable_from_wire(raw.get("type", ""), raw.get("value"))
            for raw in self._json("read_case_variables", response) or []
        }

    async def write_case_variable(
        self,
        session: WorkflowSession,
        case_id: str,
        name: str,
        variable: CaseVariable,
    ) -> None:
        await self._request(
            "write_case_variable",
            "PUT",
            f"/bonita/API/bpm/caseVariable/{case_id}/{name}",
            session=session,
            json={"type": variable.wire_type, "value": _wire_string(variable)},
        )

    async def assign_task(
        self, session: WorkflowSession, task_id: str, user_id: str
    ) -> None:
        await self._request(
            "assign_task",
            "PUT",
            f"/bonita/API/bpm/humanTask/{task_id}",
            session=session,
            json={"assigned_id": user_id},
        )

    async def complete_task(
        self,
        session: WorkflowSession,
        task_id: str,
        variables: dict[str, CaseVariable] | None = None,
    ) -> None:
        body = {name: var.to_wire() for name, var in (variables or {}).items()}
        await self._request(
            "complete_task",
            "POST",
            f"/bonita/API/bpm/humanTask/{task_id}/execution",
            session=session,
            json=body,
        )
        logger.debug("bonita_task_completed", task_id=task_id)

    async def list_coverage_tasks(
        self, session: WorkflowSession, project_id: int
    ) -> list[CoverageTask]:
        response = await self._request(
            "list_coverage_tasks",
            "POST",
            "/bonita/API/extension/getTasksByProject",
            session=session,
            json={"projectId": project_id},
        )
        payload = self._json("list_coverage_tasks", response) or {}
        return [
            _parse_coverage_task(raw, project_id) for raw in payload.get("data") or []
        ]

    async def get_coverage_task(
        self, session: WorkflowSession, task_id: str
    ) -> CoverageTask | None:
        try:
            response = await self._request(
                "get_coverage_task",
                "POST",
                "/bonita/API/extension/getTask",
                session=session,
                json={"taskId": task_id},
            )
        except ExternalSystemUnavailableError as exc:
            if exc.status_code == 404:
                return None
            raise
        payload = self._json("get_coverage_task", response) or {}
        raw = payload.get("data")
        return _parse_coverage_task(raw) if raw else None

    async def update_coverage_task_status(
        self, session: WorkflowSession, task_id: str, status: TaskStatus
    ) -> None:
        await self._request(
            "update_coverage_task_status",
            "POST",
            "/bonita/API/extension/updateTaskStatus",
            session=session,
            json={"taskId": task_id, "status": status.value},
        )

    async def assign_coverage_task(
        self, session: WorkflowSession, task_id: str, organization_id: int
    ) -> None:
        await self._request(
            "assign_coverage_task",
            "POST",
            "/bonita/API/extension/assignCommitment",
            session=session,
            json={"taskId": task_id, "organizationId": organization_id},
        )
