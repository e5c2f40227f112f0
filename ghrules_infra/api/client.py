"""
Rule API Client
===============

HTTP client for the remote rule authority (greenhouses, components, rules).

Every failure surfaces as a :class:`~ghrules.domain.exceptions.GreenRulesError`:
transport errors, non-2xx responses and malformed payloads raise
``ExternalServiceError``; a 401 clears the session and raises
``AuthenticationError``.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

import requests
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ghrules.domain.exceptions import AuthenticationError, ExternalServiceError
from ghrules.enums.rules import ComponentRole
from ghrules.schemas.greenhouse import Component, Greenhouse
from ghrules.schemas.rules import ThresholdRule, TimeRule, ToggleResult, parse_rule, parse_rules, to_wire_fields
from ghrules_infra.session import SessionProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

_greenhouse_list = TypeAdapter(list[Greenhouse])
_component_list = TypeAdapter(list[Component])


class RuleApiClient:
    """
    Talks JSON to the rule authority.

    Attributes:
        base_url (str): Server root, e.g. ``http://localhost:8080``.
        timeout (float): Per-request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        session_provider: Optional[SessionProvider] = None,
        http: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session_provider = session_provider
        self.http = http or requests.Session()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        token = self.session_provider.token if self.session_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Send one request; returns the decoded JSON body or ``None`` for an empty body."""
        url = f"{self.base_url}{path}"
        try:
            response = self.http.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise ExternalServiceError(f"Error contacting rule server at {url}: {e}") from e

        if response.status_code == 401:
            logger.warning("%s %s rejected the session token", method, path)
            if self.session_provider is not None:
                self.session_provider.clear()
            raise AuthenticationError("Session expired or invalid")

        if not response.ok:
            logger.error("%s %s returned %s", method, path, response.status_code)
            raise ExternalServiceError(
                response.text or f"HTTP {response.status_code}",
                status_code=response.status_code,
                detail={"method": method, "path": path},
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(f"Invalid JSON from {method} {path}", status_code=response.status_code) from e

    @staticmethod
    def _parse(parser: Callable[[Any], T], data: Any, what: str) -> T:
        if data is None:
            raise ExternalServiceError(f"Empty response for {what}")
        try:
            return parser(data)
        except PydanticValidationError as e:
            raise ExternalServiceError(f"Malformed {what} payload: {e}") from e

    # ------------------------------------------------------------------
    # Greenhouses & components
    # ------------------------------------------------------------------
    def list_greenhouses(self) -> list[Greenhouse]:
        data = self._request("GET", "/api/greenhouses")
        return self._parse(_greenhouse_list.validate_python, data, "greenhouse list")

    def list_components(self, gh_id: int, role: Optional[ComponentRole] = None) -> list[Component]:
        params: dict[str, Any] = {"gh_id": gh_id}
        if role is not None:
            params["role"] = ComponentRole(role).value
        data = self._request("GET", "/api/Components", params=params)
        return self._parse(_component_list.validate_python, data, "component list")

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------
    def list_rules(self, gh_id: int) -> list[ThresholdRule | TimeRule]:
        data = self._request("GET", f"/api/greenhouses/{gh_id}/rules")
        return self._parse(parse_rules, data, "rule list")

    def get_rule(self, rule_id: int) -> ThresholdRule | TimeRule:
        data = self._request("GET", f"/api/rules/{rule_id}")
        return self._parse(parse_rule, data, "rule")

    def create_rule(self, gh_id: int, fields: dict[str, Any]) -> ThresholdRule | TimeRule:
        body = to_wire_fields({**fields, "gh_id": gh_id})
        data = self._request("POST", "/api/rules", json=body)
        return self._parse(parse_rule, data, "created rule")

    def update_rule(self, rule_id: int, patch: dict[str, Any]) -> Optional[ThresholdRule | TimeRule]:
        data = self._request("PUT", f"/api/rules/{rule_id}", json=to_wire_fields(patch))
        if data is None:
            return None
        return self._parse(parse_rule, data, "updated rule")

    def delete_rule(self, rule_id: int) -> None:
        self._request("DELETE", f"/api/rules/{rule_id}")

    def toggle_rule(self, rule_id: int, enabled: bool) -> Optional[ToggleResult]:
        data = self._request("POST", f"/api/rules/{rule_id}/toggle", json={"enabled": bool(enabled)})
        if data is None:
            return None
        return self._parse(ToggleResult.model_validate, data, "toggle result")

    def close(self) -> None:
        self.http.close()
