"""
Boundary normalization of analysis service payloads.

The service is a black box that may omit fields or send them in the wrong
shape. Everything it returns passes through here exactly once, so the rest of
the workflow only ever sees a strict DatasetArtifact (upload) or ArtifactPatch
(regeneration). Field-level problems are defaulted and logged, never raised;
only a body that is not a JSON object at all is rejected.
"""
import math
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from datanova.core.errors import MalformedResponse
from datanova.core.schemas import (
    ArtifactPatch,
    ColumnClassification,
    DatasetArtifact,
    HEAD_ROWS_LIMIT,
    Resource,
    Scalar,
)

logger = logging.getLogger(__name__)


def _coerce_scalar(value: Any) -> Scalar:
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        return None if math.isnan(value) or math.isinf(value) else value
    return str(value)


def _str_list(value: Any, field: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning(f"Service field '{field}' is not a list; defaulting to empty")
        return []
    return [str(item) for item in value if item is not None]


def _unique(items: List[str]) -> List[str]:
    return list(dict.fromkeys(items))


def _parse_count(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    return value if isinstance(value, int) and value >= 0 else None


def _count(value: Any, field: str) -> int:
    count = _parse_count(value)
    if count is not None:
        return count
    if value is not None:
        logger.warning(f"Service field '{field}' is not a non-negative integer; defaulting to 0")
    return 0


def _head_rows(value: Any, columns: List[str]) -> List[Dict[str, Scalar]]:
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("Service field 'head' is not a list; defaulting to empty")
        return []

    allowed = set(columns)
    rows = []
    for row in value:
        if not isinstance(row, dict):
            continue
        rows.append({
            str(key): _coerce_scalar(cell)
            for key, cell in row.items()
            if str(key) in allowed
        })
        if len(rows) == HEAD_ROWS_LIMIT:
            break
    return rows


def _columns_from_head(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    names: List[str] = []
    for row in value[:HEAD_ROWS_LIMIT]:
        if isinstance(row, dict):
            names.extend(str(key) for key in row.keys())
    return _unique(names)


def _classification(payload: Dict[str, Any], columns: List[str]) -> ColumnClassification:
    source = payload.get("column_types")
    if isinstance(source, dict):
        numeric = source.get("numeric")
        categorical = source.get("categorical")
    else:
        numeric = payload.get("numeric_columns")
        categorical = payload.get("categorical_columns")

    allowed = set(columns)
    return ColumnClassification(
        numeric=[c for c in _unique(_str_list(numeric, "numeric_columns")) if c in allowed],
        categorical=[c for c in _unique(_str_list(categorical, "categorical_columns")) if c in allowed],
    )


def _resources(value: Any) -> List[Resource]:
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("Service field 'resources' is not a list; defaulting to empty")
        return []
    resources = []
    for item in value:
        if isinstance(item, dict) and isinstance(item.get("url"), str):
            title = item.get("title")
            resources.append(Resource(title=str(title) if title else item["url"], url=item["url"]))
    return resources


def _stats(value: Any) -> Dict[str, Scalar]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning("Service field 'stats' is not an object; defaulting to empty")
        return {}
    return {str(key): _coerce_scalar(item) for key, item in value.items()}


def _summary(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        logger.warning("Service field 'summary' is not a string; defaulting to empty")
        return ""
    return value


def _require_object(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise MalformedResponse(f"Expected a JSON object, got {type(payload).__name__}.")
    return payload


def _resolve_columns(payload: Dict[str, Any]) -> List[str]:
    columns = _unique(_str_list(payload.get("columns"), "columns"))
    if not columns:
        columns = _columns_from_head(payload.get("head"))
        if columns:
            logger.warning("Service response has no 'columns'; using the preview row keys")
    return columns


def normalize_artifact(payload: Any, file_name: str, uploaded_at: datetime) -> DatasetArtifact:
    """Map an upload response onto a complete DatasetArtifact."""
    data = _require_object(payload)
    columns = _resolve_columns(data)

    return DatasetArtifact(
        file_name=file_name,
        uploaded_at=uploaded_at,
        row_count=_count(data.get("row_count"), "row_count"),
        column_count=len(columns) if columns else _count(data.get("column_count"), "column_count"),
        columns=columns,
        column_classification=_classification(data, columns),
        summary=_summary(data.get("summary")),
        insights=_str_list(data.get("insights"), "insights"),
        resources=_resources(data.get("resources")),
        head_rows=_head_rows(data.get("head"), columns),
        stats=_stats(data.get("stats")),
    )


def normalize_patch(payload: Any, current: DatasetArtifact) -> ArtifactPatch:
    """
    Map a regeneration response onto an ArtifactPatch.

    Only keys carried with a usable value become patch fields: a null or
    wrongly typed value leaves the current field as it is. The file name and
    upload time always stay with the current artifact. When the columns
    change, preview rows and the classification are narrowed to the new
    columns, whether they come from the response or from the current artifact.
    """
    data = _require_object(payload)
    fields: Dict[str, Any] = {}

    def usable(key: str, kind: type) -> bool:
        value = data.get(key)
        if value is None:
            return False
        if not isinstance(value, kind):
            logger.warning(f"Service field '{key}' is not a {kind.__name__}; keeping the current value")
            return False
        return True

    columns = current.columns
    if usable("columns", list):
        columns = _unique(_str_list(data["columns"], "columns"))
        fields["columns"] = columns
        fields["column_count"] = len(columns)
    elif data.get("column_count") is not None:
        column_count = _parse_count(data["column_count"])
        if column_count is None:
            logger.warning("Service field 'column_count' is not a non-negative integer; keeping the current value")
        else:
            fields["column_count"] = column_count
    columns_changed = "columns" in fields

    if data.get("row_count") is not None:
        row_count = _parse_count(data["row_count"])
        if row_count is None:
            logger.warning("Service field 'row_count' is not a non-negative integer; keeping the current value")
        else:
            fields["row_count"] = row_count

    has_classification = (
        isinstance(data.get("column_types"), dict)
        or isinstance(data.get("numeric_columns"), list)
        or isinstance(data.get("categorical_columns"), list)
    )
    if has_classification:
        fields["column_classification"] = _classification(data, columns)
    elif columns_changed:
        allowed = set(columns)
        fields["column_classification"] = ColumnClassification(
            numeric=[c for c in current.column_classification.numeric if c in allowed],
            categorical=[c for c in current.column_classification.categorical if c in allowed],
        )

    if usable("head", list):
        fields["head_rows"] = _head_rows(data["head"], columns)
    elif columns_changed:
        allowed = set(columns)
        fields["head_rows"] = [
            {key: cell for key, cell in row.items() if key in allowed}
            for row in current.head_rows
        ]

    if usable("summary", str):
        fields["summary"] = data["summary"]
    if usable("insights", list):
        fields["insights"] = _str_list(data["insights"], "insights")
    if usable("resources", list):
        fields["resources"] = _resources(data["resources"])
    if usable("stats", dict):
        fields["stats"] = _stats(data["stats"])

    return ArtifactPatch(**fields)


def to_service_payload(artifact: DatasetArtifact) -> Dict[str, Any]:
    """The artifact in the field layout the service returned it in."""
    return {
        "fileName": artifact.file_name,
        "uploadedAt": artifact.uploaded_at.isoformat(),
        "row_count": artifact.row_count,
        "column_count": artifact.column_count,
        "columns": list(artifact.columns),
        "column_types": artifact.column_classification.model_dump(),
        "summary": artifact.summary,
        "insights": list(artifact.insights),
        "resources": [resource.model_dump() for resource in artifact.resources],
        "head": [dict(row) for row in artifact.head_rows],
        "stats": dict(artifact.stats),
    }
