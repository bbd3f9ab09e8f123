# File: fieldgen/client.py
"""
fieldgen - Remote Field Service Client
=======================================
Read-only client for the Jira-style field REST API, built on ``httpx``.

Operations:
    list_fields()          GET /rest/api/{v}/field
    get_by_id(field_id)    served from the field list
    search_by_name(name)   exact, case-sensitive match on the display name
    get_options(field_id)  GET /rest/api/{v}/field/{id}/context
                           GET /rest/api/{v}/field/{id}/context/{ctx}/option

The field list is fetched once per client instance; a new run builds a new
client, so descriptors are never cached across runs.  Nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional

import httpx

from fieldgen.errors import FieldNotFoundError, FieldServiceError
from fieldgen.models import ConnectionSettings, FieldDescriptor, FieldOption

logger: logging.Logger = logging.getLogger("fieldgen.client")

_PAGE_SIZE: int = 100


class JiraFieldService:
    """
    Field service over HTTP.

    Usage::

        with JiraFieldService(config.connection) as service:
            field = service.get_by_id("customfield_10010")
    """

    def __init__(
        self,
        settings: ConnectionSettings,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._settings: ConnectionSettings = settings
        self._api_root: str = f"/rest/api/{settings.api_version}"
        self._fields: Optional[List[FieldDescriptor]] = None

        token: Optional[str] = settings.resolved_token()
        auth: Optional[httpx.Auth] = None
        headers: Dict[str, str] = {"Accept": "application/json"}
        if token and settings.username:
            auth = httpx.BasicAuth(settings.username, token)
        elif token:
            headers["Authorization"] = f"Bearer {token}"

        self._client: httpx.Client = httpx.Client(
            base_url=settings.base_url,
            auth=auth,
            headers=headers,
            timeout=httpx.Timeout(settings.timeout, connect=settings.timeout),
            verify=settings.verify_ssl,
            transport=transport,
        )

    # -----------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "JiraFieldService":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -----------------------------------------------------------------
    # HTTP
    # -----------------------------------------------------------------

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url: str = f"{self._api_root}{path}"
        try:
            response: httpx.Response = self._client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FieldServiceError(
                f"GET {url} failed with HTTP {exc.response.status_code}.",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise FieldServiceError(f"GET {url} failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise FieldServiceError(f"GET {url} returned invalid JSON: {exc}") from exc

    def _paginate(self, path: str) -> Iterator[Dict[str, Any]]:
        """Yield ``values`` of a Jira paginated resource (startAt / isLast)."""
        start_at: int = 0
        while True:
            page: Any = self._get_json(path, {"startAt": start_at, "maxResults": _PAGE_SIZE})
            if not isinstance(page, dict):
                raise FieldServiceError(f"Unexpected payload for {path}: {type(page).__name__}")
            values: List[Dict[str, Any]] = list(page.get("values") or [])
            if not all(isinstance(v, dict) for v in values):
                raise FieldServiceError(f"Unexpected item in {path}: expected objects.")
            yield from values
            if page.get("isLast", True) or not values:
                return
            start_at += len(values)

    # -----------------------------------------------------------------
    # Field service operations
    # -----------------------------------------------------------------

    def list_fields(self) -> List[FieldDescriptor]:
        if self._fields is None:
            payload: Any = self._get_json("/field")
            if not isinstance(payload, list):
                raise FieldServiceError(
                    f"Unexpected payload for /field: {type(payload).__name__}"
                )
            self._fields = [FieldDescriptor.from_api(item) for item in payload if "id" in item]
            logger.info("Fetched %d remote field definitions.", len(self._fields))
        return list(self._fields)

    def get_by_id(self, field_id: str) -> FieldDescriptor:
        for descriptor in self.list_fields():
            if descriptor.id == field_id:
                return descriptor
        raise FieldNotFoundError(field_id)

    def search_by_name(self, name: str) -> List[FieldDescriptor]:
        return [d for d in self.list_fields() if d.name == name]

    def get_options(self, field_id: str) -> List[FieldOption]:
        """All options across the field's contexts, deduplicated by option id."""
        options: Dict[str, FieldOption] = {}
        for context in self._paginate(f"/field/{field_id}/context"):
            if "id" not in context:
                continue
            context_id: str = str(context["id"])
            for item in self._paginate(f"/field/{field_id}/context/{context_id}/option"):
                option_id: str = str(item.get("id", ""))
                if option_id and option_id not in options:
                    options[option_id] = FieldOption(
                        id=option_id,
                        value=str(item.get("value", "")),
                        disabled=bool(item.get("disabled", False)),
                    )
        logger.debug("Fetched %d option(s) for %s.", len(options), field_id)
        return list(options.values())


__all__: List[str] = ["JiraFieldService"]
