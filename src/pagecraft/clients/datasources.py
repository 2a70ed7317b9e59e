"""Data Source Client.

Named HTTP endpoints whose JSON responses feed template bindings. Each
endpoint's ``variable`` is the data-source name used as the first segment
of a ``{{variable.path}}`` expression.
"""

import asyncio
import time
from typing import Any, Iterable

import httpx
import pybreaker
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..core import get_logger
from ..core.id import new_endpoint_id
from ..core.json import JSONParseError, parse_json_value
from ..core.validate import EndpointRequest, HttpMethod, ValidationError
from ..monitoring import metrics_collector

logger = get_logger(__name__)

ERROR_STATUS = 500
BREAKER_OPEN_STATUS = 503


class ApiEndpoint(BaseModel):
    """A registered data-source endpoint."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    variable: str
    url: str
    method: HttpMethod = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | None = None
    is_active: bool = True


class ApiResponse(BaseModel):
    """Last fetch result of an endpoint (never persisted)."""

    model_config = ConfigDict(frozen=True)

    endpoint_id: str
    data: Any = None
    status: int
    error: str | None = None
    timestamp: float = Field(default_factory=time.time)

    @property
    def ok(self) -> bool:
        return self.error is None


class BreakerListener(pybreaker.CircuitBreakerListener):
    """Logs circuit breaker state changes."""

    def state_change(self, cb, old_state, new_state):
        logger.warning(
            "breaker_state_change",
            breaker=cb.name,
            from_state=str(old_state),
            to_state=str(new_state),
        )


class DataSourceRegistry:
    """
    Endpoint registry and fetcher with per-endpoint circuit breakers.

    Implements the data-source accessor used by template binding: a
    variable reads as its last successful response, and as absent when it
    is unknown, not fetched yet or its last fetch failed.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        fail_max: int = 5,
        reset_timeout: int = 30,
        client: httpx.Client | None = None,
    ) -> None:
        """
        Args:
            timeout: Request timeout in seconds
            fail_max: Consecutive failures before an endpoint's breaker opens
            reset_timeout: Seconds an open breaker waits before retrying
            client: Preconfigured HTTP client (default: new client)
        """
        self.timeout = timeout
        self.fail_max = fail_max
        self.reset_timeout = reset_timeout
        self._client = client or httpx.Client(timeout=timeout)

        self.endpoints: dict[str, ApiEndpoint] = {}
        self.responses: dict[str, ApiResponse] = {}
        self._breakers: dict[str, pybreaker.CircuitBreaker] = {}

        logger.info("datasources_init", timeout=timeout, fail_max=fail_max)

    # =========================================================================
    # Endpoint management
    # =========================================================================

    def add_endpoint(self, request: EndpointRequest | dict[str, Any], endpoint_id: str | None = None) -> ApiEndpoint:
        """
        Register an endpoint.

        Raises:
            ValidationError: If the request is invalid or the variable is taken
        """
        request = self._validate(request)
        if any(ep.variable == request.variable for ep in self.endpoints.values()):
            raise ValidationError(f"Variable already in use: {request.variable}")

        endpoint = ApiEndpoint(id=endpoint_id or new_endpoint_id(), **request.model_dump())
        self.endpoints[endpoint.id] = endpoint
        logger.info("endpoint_added", endpoint_id=endpoint.id, variable=endpoint.variable)
        return endpoint

    def update_endpoint(self, endpoint_id: str, **updates: Any) -> ApiEndpoint | None:
        """
        Apply a partial update; returns None for an unknown id.

        Raises:
            ValidationError: If the updated endpoint is invalid
        """
        current = self.endpoints.get(endpoint_id)
        if current is None:
            return None

        merged = {**current.model_dump(exclude={"id"}), **updates}
        request = self._validate(merged)
        endpoint = ApiEndpoint(id=endpoint_id, **request.model_dump())
        self.endpoints[endpoint_id] = endpoint

        if endpoint.url != current.url or endpoint.method != current.method:
            self._breakers.pop(endpoint_id, None)

        logger.info("endpoint_updated", endpoint_id=endpoint_id, fields=sorted(updates))
        return endpoint

    def delete_endpoint(self, endpoint_id: str) -> bool:
        """Remove an endpoint together with its cached response."""
        if self.endpoints.pop(endpoint_id, None) is None:
            return False
        self.responses.pop(endpoint_id, None)
        self._breakers.pop(endpoint_id, None)
        logger.info("endpoint_deleted", endpoint_id=endpoint_id)
        return True

    def find_by_variable(self, variable: str) -> ApiEndpoint | None:
        for endpoint in self.endpoints.values():
            if endpoint.variable == variable:
                return endpoint
        return None

    def export_endpoints(self) -> list[dict[str, Any]]:
        """Endpoint definitions as plain data (responses excluded)."""
        return [endpoint.model_dump() for endpoint in self.endpoints.values()]

    def import_endpoints(self, items: Iterable[dict[str, Any]]) -> int:
        """
        Replace the endpoint set from saved definitions.

        Invalid entries are skipped. Returns the number imported.
        """
        self.endpoints.clear()
        self.responses.clear()
        self._breakers.clear()

        for item in items:
            fields = {k: v for k, v in item.items() if k != "id"}
            try:
                self.add_endpoint(fields, endpoint_id=item.get("id"))
            except ValidationError as e:
                logger.warning("endpoint_import_skipped", endpoint_id=item.get("id"), error=str(e))

        return len(self.endpoints)

    @staticmethod
    def _validate(request: EndpointRequest | dict[str, Any]) -> EndpointRequest:
        if isinstance(request, EndpointRequest):
            return request
        try:
            return EndpointRequest.model_validate(request)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid endpoint: {e.errors()[0]['msg']}") from e

    # =========================================================================
    # Fetching
    # =========================================================================

    def _breaker_for(self, endpoint_id: str) -> pybreaker.CircuitBreaker:
        breaker = self._breakers.get(endpoint_id)
        if breaker is None:
            breaker = pybreaker.CircuitBreaker(
                fail_max=self.fail_max,
                reset_timeout=self.reset_timeout,
                name=f"datasource-{endpoint_id}",
                listeners=[BreakerListener()],
            )
            self._breakers[endpoint_id] = breaker
        return breaker

    def execute_endpoint(self, endpoint_id: str) -> ApiResponse | None:
        """
        Fetch one endpoint and cache its response.

        Failures never raise: they are cached as an error response whose
        data reads as absent. Returns None for an unknown id.
        """
        endpoint = self.endpoints.get(endpoint_id)
        if endpoint is None:
            logger.warning("endpoint_not_found", endpoint_id=endpoint_id)
            return None

        durations: list[float] = []
        with metrics_collector.measure_duration(durations.append):
            result, outcome = self._fetch(endpoint)

        metrics_collector.record_fetch(outcome, durations[0])
        if outcome != "success":
            metrics_collector.record_error(outcome, "datasources")
        self.responses[endpoint_id] = result
        return result

    def _fetch(self, endpoint: ApiEndpoint) -> tuple[ApiResponse, str]:
        """One request through the endpoint's breaker; returns (response, outcome)."""
        endpoint_id = endpoint.id
        headers = {"Content-Type": "application/json", **endpoint.headers}
        content = endpoint.body if endpoint.method != "GET" and endpoint.body else None

        try:

            def _make_request() -> httpx.Response:
                return self._client.request(endpoint.method, endpoint.url, headers=headers, content=content)

            response = self._breaker_for(endpoint_id).call(_make_request)
            data = parse_json_value(response.content)
            result = ApiResponse(endpoint_id=endpoint_id, data=data, status=response.status_code)
            outcome = "success"
            logger.info("endpoint_fetched", variable=endpoint.variable, status=response.status_code)

        except pybreaker.CircuitBreakerError:
            result = ApiResponse(
                endpoint_id=endpoint_id,
                status=BREAKER_OPEN_STATUS,
                error="Circuit breaker open - data source unavailable",
            )
            outcome = "breaker_open"
            logger.error("endpoint_fetch_failed", variable=endpoint.variable, error=result.error)

        except httpx.HTTPError as e:
            result = ApiResponse(endpoint_id=endpoint_id, status=ERROR_STATUS, error=str(e) or type(e).__name__)
            outcome = "error"
            logger.warning("http_error", variable=endpoint.variable, error=result.error)

        except JSONParseError as e:
            result = ApiResponse(endpoint_id=endpoint_id, status=response.status_code, error=str(e))
            outcome = "error"
            logger.warning("invalid_response", variable=endpoint.variable, error=str(e))

        return result, outcome

    async def execute_all_active(self) -> list[ApiResponse]:
        """
        Fetch every active endpoint concurrently.

        One failing endpoint never blocks the others; each records its own
        response.
        """
        active = [ep.id for ep in self.endpoints.values() if ep.is_active]
        logger.info("executing_active_endpoints", count=len(active))

        results = await asyncio.gather(*(asyncio.to_thread(self.execute_endpoint, ep_id) for ep_id in active))
        return [r for r in results if r is not None]

    # =========================================================================
    # Accessor
    # =========================================================================

    def get_value(self, source_name: str) -> Any | None:
        """Cached data for a variable; None when unknown, unfetched or failed."""
        endpoint = self.find_by_variable(source_name)
        if endpoint is None:
            return None

        response = self.responses.get(endpoint.id)
        if response is None or not response.ok:
            return None
        return response.data

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "DataSourceRegistry":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
