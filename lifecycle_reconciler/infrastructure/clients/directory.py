"""Directory REST client for reading and disabling user accounts"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import httpx

from lifecycle_reconciler.config import Settings
from lifecycle_reconciler.domain.exceptions import (
    DirectoryMutationError,
    DirectoryQueryError,
    PreconditionMissingError,
)
from lifecycle_reconciler.domain.models import Account
from lifecycle_reconciler.domain.ports import AccountQuery
from lifecycle_reconciler.utils.date_utils import ensure_utc, parse_directory_timestamp


def parse_account(record: Dict[str, Any]) -> Account:
    """Build an Account from a directory record; raises KeyError/ValueError/TypeError on bad data"""
    enabled = record.get("enabled", True)
    if not isinstance(enabled, bool):
        raise TypeError(f"enabled must be a boolean, got {enabled!r}")
    return Account(
        account_id=str(record["account_id"]),
        display_name=record.get("display_name") or None,
        email_address=(record.get("email_address") or "").strip() or None,
        last_activity_at=parse_directory_timestamp(record.get("last_activity_at")),
        expires_at=parse_directory_timestamp(record.get("expires_at")),
        description=record.get("description") or "",
        enabled=enabled,
    )


class DirectoryClient:
    """Synchronous client for the directory service HTTP API"""

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.Client] = None,
    ):
        self.base_url = settings.directory_api_base
        self.timeout = settings.http_timeout_seconds
        self.search_base = settings.directory_search_base
        self.headers = {"Accept": "application/json"}
        if settings.directory_api_token is not None:
            self.headers["Authorization"] = f"Bearer {settings.directory_api_token.get_secret_value()}"
        self._http_client = http_client

    @contextmanager
    def _client(self) -> Iterator[httpx.Client]:
        if self._http_client is not None:
            yield self._http_client
            return
        with httpx.Client(base_url=self.base_url, timeout=self.timeout, headers=self.headers) as client:
            yield client

    def check_available(self) -> None:
        """
        Probe the directory before a run.

        Raises:
            PreconditionMissingError: directory unreachable or unhealthy
        """
        with self._client() as client:
            try:
                response = client.get("/health")
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise PreconditionMissingError(
                    f"Directory health check failed: {e.response.status_code}"
                ) from e
            except httpx.HTTPError as e:
                raise PreconditionMissingError(f"Directory unreachable at {self.base_url}: {e}") from e

    def query_accounts(self, query: AccountQuery) -> List[Account]:
        """
        Fetch accounts matching the filter, in directory order.

        Raises:
            DirectoryQueryError: On timeout, HTTP errors, or invalid response
        """
        params: Dict[str, str] = {}
        if query.enabled is not None:
            params["enabled"] = str(query.enabled).lower()
        if query.last_activity_before is not None:
            params["last_activity_before"] = ensure_utc(query.last_activity_before).isoformat()
        if query.has_expiration is not None:
            params["has_expiration"] = str(query.has_expiration).lower()
        if self.search_base:
            params["search_base"] = self.search_base

        with self._client() as client:
            try:
                response = client.get("/accounts", params=params)
                response.raise_for_status()
                data = response.json()
                return [parse_account(record) for record in data.get("accounts", [])]

            except httpx.TimeoutException as e:
                raise DirectoryQueryError(f"Directory query timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise DirectoryQueryError(f"Directory query error: {e.response.status_code}") from e
            except httpx.HTTPError as e:
                raise DirectoryQueryError(f"Directory query failed: {e}") from e
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                raise DirectoryQueryError(f"Invalid account data from directory: {e}") from e

    def get_account(self, account_id: str) -> Account:
        """
        Re-read a single account's current state.

        Raises:
            DirectoryQueryError: On timeout, HTTP errors, or invalid response
        """
        with self._client() as client:
            try:
                response = client.get(f"/accounts/{account_id}")
                response.raise_for_status()
                return parse_account(response.json())

            except httpx.TimeoutException as e:
                raise DirectoryQueryError(f"Directory read timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise DirectoryQueryError(
                    f"Directory read error for {account_id}: {e.response.status_code}"
                ) from e
            except httpx.HTTPError as e:
                raise DirectoryQueryError(f"Directory read failed for {account_id}: {e}") from e
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                raise DirectoryQueryError(f"Invalid account data for {account_id}: {e}") from e

    def set_enabled_and_description(self, account_id: str, enabled: bool, description: str) -> None:
        """
        Point mutation of the two fields the reconciler owns.

        Raises:
            DirectoryMutationError: On timeout or HTTP errors
        """
        with self._client() as client:
            try:
                response = client.patch(
                    f"/accounts/{account_id}",
                    json={"enabled": enabled, "description": description},
                )
                response.raise_for_status()

            except httpx.TimeoutException as e:
                raise DirectoryMutationError(f"Directory update timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise DirectoryMutationError(
                    f"Directory update error for {account_id}: {e.response.status_code}"
                ) from e
            except httpx.HTTPError as e:
                raise DirectoryMutationError(f"Directory update failed for {account_id}: {e}") from e
