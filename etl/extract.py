"""
Feishu Sheets Data Extraction

Resolves sheet titles to sheet ids and reads raw value grids.
Reads run as one batched request or as one request per range.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List

import requests

from etl.client import ApiResponse, FeishuClient
from etl.errors import FetchError, MissingSheetError

logger = logging.getLogger(__name__)


@dataclass
class SheetInfo:
    """A sheet tab inside a spreadsheet."""
    title: str
    sheet_id: str


@dataclass
class ValueRange:
    """Raw cell grid for one queried range; first row is the header."""
    range: str
    values: List[List[Any]] = field(default_factory=list)


class FeishuSheetsExtractor:
    """
    Extracts data from a Feishu spreadsheet.

    Sheet titles are always resolved to sheet ids through the metadata
    endpoint. Any failed read, including "not found", aborts the run.

    Parallel mode shares the client's requests.Session across worker
    threads. requests does not guarantee Session thread safety; prefer
    batch or sequential where that matters.
    """

    RENDER_PARAMS = {
        "valueRenderOption": "ToString",
        "dateTimeRenderOption": "FormattedString",
    }

    def __init__(self, client: FeishuClient, spreadsheet_token: str):
        """
        Initialize extractor.

        Args:
            client: Shared Feishu client, already holding a bearer token
            spreadsheet_token: Identifier of the spreadsheet to read
        """
        self.client = client
        self.spreadsheet_token = spreadsheet_token

    def list_sheets(self) -> List[SheetInfo]:
        """
        Fetch the sheet tabs of the spreadsheet.

        Returns:
            List of SheetInfo in spreadsheet order

        Raises:
            FetchError: If the metadata request fails
        """
        endpoint = f"/sheets/v3/spreadsheets/{self.spreadsheet_token}/sheets/query"
        try:
            response = self.client.call("GET", endpoint)
        except requests.RequestException as e:
            raise FetchError(
                f"Failed to list sheets: {e}", detail={"error": type(e).__name__}
            ) from e

        if not response.ok:
            raise FetchError(
                f"Failed to list sheets: {response.message or 'unknown error'}",
                detail=response.describe(),
            )

        sheets = [
            SheetInfo(title=str(sheet.get("title", "")), sheet_id=str(sheet.get("sheet_id", "")))
            for sheet in response.data.get("sheets") or []
        ]
        logger.debug(f"Spreadsheet sheets: {[s.title for s in sheets]}")
        return sheets

    def resolve_sheet_ids(self, titles: List[str]) -> List[str]:
        """
        Map logical table titles to sheet ids.

        Args:
            titles: Sheet titles, e.g. ["Courses", "Characters"]

        Returns:
            Sheet ids in the same order as titles

        Raises:
            MissingSheetError: For the first title absent from the spreadsheet
        """
        sheets = self.list_sheets()
        by_title: Dict[str, str] = {sheet.title: sheet.sheet_id for sheet in sheets}

        sheet_ids = []
        for title in titles:
            if title not in by_title:
                raise MissingSheetError(title, available=by_title.keys())
            sheet_ids.append(by_title[title])

        logger.info(f"Resolved {len(sheet_ids)} sheets: {dict(zip(titles, sheet_ids))}")
        return sheet_ids

    def fetch_ranges(self, ranges: List[str], mode: str = "batch") -> List[ValueRange]:
        """
        Read one or more ranges.

        Args:
            ranges: Ranges in "<sheet_id>!A1:Z3000" notation
            mode: "batch" (one request), "parallel" or "sequential"
                  (one request per range)

        Returns:
            One ValueRange per requested range, in request order

        Raises:
            FetchError: If any read fails
        """
        if not ranges:
            return []

        logger.info(f"Fetching {len(ranges)} ranges ({mode})")

        if mode == "batch":
            return self._fetch_batch(ranges)
        if mode == "parallel":
            with ThreadPoolExecutor(max_workers=len(ranges)) as executor:
                return list(executor.map(self.fetch_range, ranges))
        if mode == "sequential":
            return [self.fetch_range(cell_range) for cell_range in ranges]

        raise ValueError(f"Unknown fetch mode: {mode}")

    def fetch_range(self, cell_range: str) -> ValueRange:
        """
        Read a single range.

        Args:
            cell_range: Range in "<sheet_id>!A1:Z3000" notation

        Returns:
            ValueRange for the range
        """
        endpoint = f"/sheets/v2/spreadsheets/{self.spreadsheet_token}/values/{cell_range}"
        response = self._get(endpoint, cell_range, params=dict(self.RENDER_PARAMS))

        data = response.data
        value_range = data.get("valueRange") or data
        values = value_range.get("values") or []

        logger.info(f"Successfully extracted {len(values)} rows from range {cell_range}")
        return ValueRange(range=cell_range, values=values)

    def _fetch_batch(self, ranges: List[str]) -> List[ValueRange]:
        joined = ",".join(ranges)
        endpoint = f"/sheets/v2/spreadsheets/{self.spreadsheet_token}/values_batch_get"
        params = {"ranges": joined, **self.RENDER_PARAMS}
        response = self._get(endpoint, joined, params=params)

        value_ranges = response.data.get("valueRanges") or []
        if len(value_ranges) < len(ranges):
            raise FetchError(
                f"Batch read returned {len(value_ranges)} ranges, expected {len(ranges)}",
                cell_range=joined,
                detail=response.describe(),
            )

        # Responses are matched to requests by position; the echoed range
        # string may be normalized by the server.
        results = []
        for cell_range, value_range in zip(ranges, value_ranges):
            values = value_range.get("values") or []
            logger.info(f"Successfully extracted {len(values)} rows from range {cell_range}")
            results.append(ValueRange(range=cell_range, values=values))
        return results

    def _get(self, endpoint: str, cell_range: str, **kwargs) -> ApiResponse:
        try:
            response = self.client.call("GET", endpoint, **kwargs)
        except requests.RequestException as e:
            raise FetchError(
                f"Failed to read range {cell_range}: {e}",
                cell_range=cell_range,
                detail={"error": type(e).__name__},
            ) from e

        if not response.ok:
            raise FetchError(
                f"Failed to read range {cell_range}: {response.message or 'unknown error'} "
                f"(code {response.code}, HTTP {response.status_code})",
                cell_range=cell_range,
                detail=response.describe(),
            )
        return response


def build_range(sheet_id: str, cell_range: str = "A1:Z3000") -> str:
    """Return "<sheet_id>!<cell_range>"."""
    return f"{sheet_id}!{cell_range}"


def fetch_tables(
    extractor: FeishuSheetsExtractor,
    titles: List[str],
    cell_range: str = "A1:Z3000",
    mode: str = "batch",
) -> List[ValueRange]:
    """
    Convenience function to resolve titles and read their ranges.

    Args:
        extractor: Extractor bound to a spreadsheet
        titles: Sheet titles to read
        cell_range: A1 range applied to every sheet
        mode: Fetch mode, see FeishuSheetsExtractor.fetch_ranges

    Returns:
        One ValueRange per title, in title order
    """
    sheet_ids = extractor.resolve_sheet_ids(titles)
    ranges = [build_range(sheet_id, cell_range) for sheet_id in sheet_ids]
    return extractor.fetch_ranges(ranges, mode=mode)
