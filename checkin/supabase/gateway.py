import logging
from typing import Optional

import httpx
import sentry_sdk
from postgrest.exceptions import APIError
from supabase import Client, create_client

from checkin.exceptions import (
    StoreQueryException,
    StoreUnavailableException,
    UniqueViolation,
)
from checkin.supabase.helpers import is_unique_violation, one_or_none


class RecordStore:
    """
    Handle on the backing Supabase project.

    Built once per process in `create_app` and handed to the services. Every
    query goes through `execute`, which turns store failures into the
    application's exception types.
    """

    def __init__(self, client: Client, logger: Optional[logging.Logger] = None):
        self.client = client
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, url: str, key: str, logger: Optional[logging.Logger] = None) -> "RecordStore":
        return cls(create_client(url, key), logger)

    def table(self, table_name: str):
        return self.client.table(table_name)

    def execute(self, builder) -> list[dict]:
        try:
            response = builder.execute()
        except APIError as e:
            if is_unique_violation(e):
                raise UniqueViolation(e.message or "Unique constraint violated") from e

            error_msg = f"Supabase query error: {e.message}"
            self.logger.error(error_msg)
            sentry_sdk.capture_message(error_msg, level="error", extras={"code": e.code, "details": e.details})
            raise StoreQueryException(e.message or "Database query failed") from e
        except httpx.TransportError as e:
            self.logger.error(f"Supabase unreachable: {e}")
            sentry_sdk.capture_exception(e)
            raise StoreUnavailableException("The record store could not be reached") from e

        return unwrap_or_error(response, self.logger)

    def execute_one(self, builder) -> Optional[dict]:
        return one_or_none(self.execute(builder))


def unwrap_or_error(response, logger: logging.Logger):
    """
    Check for errors in Supabase response and return data if successful.
    Raises StoreQueryException if there's an error.

    Args:
        response: The response object from a Supabase query
        logger: Where to report the failure
    Returns:
        The data from the response, always as a list of rows
    """
    if response is None:
        return []

    if hasattr(response, "error") and response.error:
        error_msg = f"Supabase query error: {response.error}"
        logger.error(error_msg)
        sentry_sdk.capture_message(
            error_msg, level="error", extras={"error": response.error, "response": str(response) if response else None}
        )
        raise StoreQueryException(error_msg)

    if not hasattr(response, "data"):
        error_msg = f"Supabase response missing data attribute: {response}"
        logger.error(error_msg)
        sentry_sdk.capture_message(error_msg, level="error", extras={"response": str(response) if response else None})
        raise StoreQueryException(error_msg)

    if response.data is None:
        return []
    if isinstance(response.data, dict):
        return [response.data]

    return response.data
