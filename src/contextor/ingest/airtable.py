"""Airtable source — one design document per table record.

Records are fetched page by page from the Airtable REST API with httpx. A
record becomes ``"field: value"`` lines (blank-line separated) built from its
string fields longer than ten characters; records with no such field are
skipped.
"""

from __future__ import annotations

from collections.abc import Iterator

import httpx
import structlog

from contextor.db.models import Project
from contextor.errors import SourceReadError
from contextor.ingest.base import BaseSource, Document

logger = structlog.get_logger(__name__)

AIRTABLE_API_URL = "https://api.airtable.com/v0"
_MIN_FIELD_CHARS = 10


def record_text(fields: dict) -> str:
    """Render a record's meaningful string fields as ``"name: value"`` lines."""
    return "\n\n".join(
        f"{key}: {value}"
        for key, value in fields.items()
        if isinstance(value, str) and len(value) > _MIN_FIELD_CHARS
    )


class AirtableSource(BaseSource):
    """Yield one ``design`` Document per record of an Airtable table.

    Args:
        table: Table name or id.
        api_key: Airtable personal access token.
        base_id: Airtable base id (``app...``).
        client: Optional preconfigured httpx.Client (tests inject a
            MockTransport-backed client).
        timeout: Per-request timeout in seconds.
    """

    name = "airtable"

    def __init__(
        self,
        table: str,
        api_key: str,
        base_id: str,
        client: httpx.Client | None = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__()
        self.table = table
        self.base_id = base_id
        self._client = client or httpx.Client(timeout=timeout)
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._records: dict[str, dict] = {}

    def discover(self, project: Project) -> list[str]:
        self._records = {}
        for record in self._iter_records():
            self._records[record["id"]] = record.get("fields") or {}
        logger.info("airtable_records_fetched", table=self.table, count=len(self._records))
        return list(self._records)

    def load(self, ref: str) -> Document | None:
        fields = self._records.get(ref)
        if fields is None:
            raise SourceReadError(self._path(ref), "record not fetched")
        content = record_text(fields)
        if not content.strip():
            return None
        return Document(
            text=content,
            source_type="design",
            path=self._path(ref),
            metadata={
                "file_type": "airtable",
                "record_id": ref,
                "table": self.table,
                "fields": list(fields),
            },
        )

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _path(self, record_id: str) -> str:
        return f"airtable/{self.table}/{record_id}"

    def _iter_records(self) -> Iterator[dict]:
        """Follow Airtable's ``offset`` pagination until the last page.

        Raises:
            SourceReadError: If any page cannot be fetched; the whole table is
                unreadable in that case.
        """
        url = f"{AIRTABLE_API_URL}/{self.base_id}/{self.table}"
        params: dict[str, str] = {}
        while True:
            try:
                response = self._client.get(url, headers=self._headers, params=params)
                response.raise_for_status()
                payload = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                raise SourceReadError(f"airtable/{self.table}", str(exc)) from exc
            yield from payload.get("records", [])
            offset = payload.get("offset")
            if not offset:
                return
            params = {"offset": offset}
