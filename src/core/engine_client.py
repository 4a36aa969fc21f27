"""Async RPC client for the external scheduling engine using httpx."""

import logging
from types import TracebackType
from typing import Any, Self

import httpx
from pydantic import ValidationError

from src.core.config import constants, settings
from src.core.errors import EngineCommandError, EngineTransportError, InvalidEngineResponseError
from src.models.wire_models import (
    ConfigurationUpdateRequest,
    EngineResponse,
    ProjectDataPayload,
    ProjectUpdateRequest,
)


logger = logging.getLogger(__name__)


class EngineClient:
    """Thin command channel to the scheduling engine.

    Every command is a POST of ``{"command": ..., "args": [...]}`` to the RPC path;
    the engine answers with ``{"success": bool, "data": ..., "error": str}``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        *,
        api_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Engine base URL (defaults to settings.engine_base_url)
            timeout: Transport timeout in seconds (defaults to settings.engine_timeout_seconds)
            api_token: Optional bearer token (defaults to settings.engine_api_token)
            transport: Optional httpx transport, used by tests to stub the engine
        """
        headers = {"Content-Type": "application/json"}
        token = api_token if api_token is not None else settings.engine_api_token
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=base_url or settings.engine_base_url,
            timeout=timeout if timeout is not None else settings.engine_timeout_seconds,
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def invoke(self, command: str, *args: Any) -> Any:
        """Run one engine command and return its ``data`` field.

        Args:
            command: Engine command name (e.g. "project.update")
            *args: Positional command arguments, JSON-serializable

        Returns:
            The ``data`` member of the engine response

        Raises:
            EngineTransportError: The engine could not be reached or answered non-2xx
            EngineCommandError: The engine reported the command as failed
            InvalidEngineResponseError: The response envelope could not be parsed
        """
        try:
            response = await self._client.post(constants.ENGINE_RPC_PATH, json={"command": command, "args": list(args)})
        except httpx.HTTPError as e:
            msg = f"Engine request failed for {command}: {e}"
            raise EngineTransportError(msg, command=command) from e

        if not response.is_success:
            msg = f"Engine returned HTTP {response.status_code} for {command}"
            raise EngineTransportError(msg, command=command, status_code=response.status_code)

        try:
            envelope = EngineResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            msg = f"Malformed engine response for {command}"
            raise InvalidEngineResponseError(msg, command=command) from e

        if not envelope.success:
            msg = envelope.error or f"Engine rejected {command}"
            raise EngineCommandError(msg, command=command)

        logger.debug("Engine command %s succeeded", command)
        return envelope.data

    async def update_project(self, project_id: int | str, request: ProjectUpdateRequest) -> None:
        """Replace the engine's copy of the project with a full snapshot."""
        await self.invoke(constants.COMMAND_PROJECT_UPDATE, project_id, request.to_wire())

    async def recalculate_project(self, project_id: int | str) -> ProjectDataPayload:
        """Ask the engine to recompute the schedule and return the computed tasks.

        Raises:
            InvalidEngineResponseError: If the payload has no valid task list
        """
        data = await self.invoke(constants.COMMAND_PROJECT_RECALCULATE, project_id)
        if not isinstance(data, dict) or not isinstance(data.get("tasks"), list):
            msg = "Invalid recalculation response: missing task list"
            raise InvalidEngineResponseError(msg, command=constants.COMMAND_PROJECT_RECALCULATE)

        try:
            return ProjectDataPayload.model_validate(data)
        except ValidationError as e:
            msg = "Invalid recalculation response: malformed task records"
            raise InvalidEngineResponseError(msg, command=constants.COMMAND_PROJECT_RECALCULATE) from e

    async def update_configuration(self, configuration: dict[str, Any]) -> None:
        """Push the engine-relevant projection of user preferences."""
        request = ConfigurationUpdateRequest.model_validate(configuration)
        await self.invoke(constants.COMMAND_CONFIGURATION_UPDATE, request.model_dump())
