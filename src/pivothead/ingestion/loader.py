"""Record loading for the engine: remote JSON, local files, or pushed rows.

The engine only needs an in-memory list of flat scalar records; this module
turns the other supported sources into one.  Nested JSON is flattened with
``pandas.json_normalize`` (``{"a": {"b": 1}}`` -> ``{"a.b": 1}``) and
NaN/NaT become None.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, AsyncIterable, Iterable

import httpx
import numpy as np
import pandas as pd

from pivothead.config.settings import settings
from pivothead.engine.errors import DataLoadError, InvalidConfigurationError, PivotError
from pivothead.engine.models import DATA_SOURCE_TYPES, DataSource, Record
from pivothead.engine.records import freeze_records

logger = logging.getLogger(__name__)

RecordSource = DataSource | Iterable[Any] | AsyncIterable[Any] | None


def validate_data_source(source: DataSource) -> DataSource:
    if source.type not in DATA_SOURCE_TYPES:
        raise InvalidConfigurationError(
            f"Unknown data source type: {source.type!r}",
            metadata={"type": source.type},
        )
    if source.type == "remote" and not source.url:
        raise InvalidConfigurationError("Remote data source requires a url", metadata={"type": "remote"})
    if source.type == "file" and not source.path:
        raise InvalidConfigurationError("File data source requires a path", metadata={"type": "file"})
    return source


async def load_records(
    source: RecordSource,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[Record, ...]:
    """Resolve *source* into frozen records.

    Raises:
        DataLoadError: the source could not be fetched or parsed.
        InvalidRecordError: a row is not a flat map of scalars.
    """
    if source is None:
        return ()

    try:
        if isinstance(source, DataSource):
            validate_data_source(source)
            if source.type == "remote":
                rows = await fetch_remote_rows(
                    source.url, headers=source.headers, params=source.params, transport=transport
                )
            elif source.type == "file":
                rows = await asyncio.to_thread(read_file_rows, source.path)
            else:
                rows = []
        elif hasattr(source, "__aiter__"):
            rows = [row async for row in source]
        else:
            rows = list(source)
    except PivotError:
        raise
    except Exception as exc:
        raise DataLoadError(f"Failed to load records: {exc}", metadata={"source": repr(source)}) from exc

    records = freeze_records(rows)
    logger.info("Loaded %d records", len(records))
    return records


async def fetch_remote_rows(
    url: str,
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[dict]:
    """GET *url* and flatten the JSON body (a list of objects, or one object)."""
    async with httpx.AsyncClient(
        timeout=timeout or settings.remote_timeout_seconds,
        transport=transport,
    ) as client:
        resp = await client.get(url, headers=headers or {}, params=params or {})
        resp.raise_for_status()
        data = resp.json()

    rows = json_rows(data)
    if not rows:
        logger.warning("No data returned from %s", url)
        return []
    return frame_to_rows(pd.json_normalize(rows))


def read_file_rows(path: str | Path) -> list[dict]:
    """Read a ``.json``, ``.jsonl`` or ``.csv`` file into flat rows."""
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(p)
    elif suffix == ".jsonl":
        df = pd.read_json(p, lines=True)
    elif suffix == ".json":
        rows = json_rows(json.loads(p.read_text(encoding="utf-8")))
        if not rows:
            return []
        df = pd.json_normalize(rows)
    else:
        raise ValueError(f"Unsupported file type: {p.suffix or '(none)'}")
    return frame_to_rows(df)


def json_rows(data: Any) -> list[dict]:
    """A JSON body as a list of objects: a list of objects, or one object."""
    rows = data if isinstance(data, list) else [data]
    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            raise ValueError(f"Expected a JSON object at position {i}, got {type(row).__name__}")
    return rows


def frame_to_rows(df: pd.DataFrame) -> list[dict]:
    """DataFrame -> list of dicts with native Python scalars and None for missing."""
    if df.empty:
        return []
    # Replace NaN/NaT with None so records carry a real null
    rows = df.astype(object).replace({np.nan: None}).to_dict(orient="records")
    return [{str(k): _native(v) for k, v in row.items()} for row in rows]


def _native(value: Any) -> Any:
    if value is pd.NaT:
        return None
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if isinstance(value, float) and np.isnan(value):
        return None
    return value
