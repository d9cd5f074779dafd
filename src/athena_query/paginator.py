import logging
from typing import List, Optional, Tuple

from athena_query.coercion import coerce_row
from athena_query.errors import PageFetchError
from athena_query.models import ColumnDescriptor, ExecutionHandle, ResultPage, TypedRow
from athena_query.service import ExecutionService

logger = logging.getLogger(__name__)


class ResultPaginator:
    """Drain every result page of a finished execution into typed rows."""

    def __init__(self, service: ExecutionService) -> None:
        self._service = service

    async def fetch_all(self, handle: ExecutionHandle, page_size: int) -> List[TypedRow]:
        """Fetch and decode all rows, skipping the header row of the first page."""
        rows, _ = await self.fetch_all_with_columns(handle, page_size)
        return rows

    async def fetch_all_with_columns(
        self, handle: ExecutionHandle, page_size: int
    ) -> Tuple[List[TypedRow], Tuple[ColumnDescriptor, ...]]:
        """Fetch all rows along with the column descriptors of the result set."""
        rows: List[TypedRow] = []
        columns: Tuple[ColumnDescriptor, ...] = ()
        next_token: Optional[str] = None
        page_number = 0

        while True:
            page_number += 1
            page = await self._fetch_page(handle, page_number, page_size, next_token)
            page_rows = page.rows
            if page_number == 1:
                columns = page.columns
                page_rows = page_rows[1:]
            rows.extend(coerce_row(columns, cells) for cells in page_rows)
            logger.debug(
                "Fetched page %d of query %s (%d rows, more=%s).",
                page_number,
                handle,
                len(page_rows),
                not page.is_last,
            )
            if page.is_last:
                return rows, columns
            next_token = page.next_token

    async def _fetch_page(
        self,
        handle: ExecutionHandle,
        page_number: int,
        page_size: int,
        next_token: Optional[str],
    ) -> ResultPage:
        try:
            if next_token is None:
                return await self._service.get_results_page(handle, max_results=page_size)
            # The service keeps the page size of the first request.
            return await self._service.get_results_page(handle, next_token=next_token)
        except Exception as exc:
            raise PageFetchError(
                f"Fetching page {page_number} of query {handle} failed: {exc}",
                handle,
                page_number,
            ) from exc
