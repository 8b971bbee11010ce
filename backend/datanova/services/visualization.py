"""
Chart configuration: axis-binding rules, row-limit clamping and the chart
session state machine.

Nothing here reaches the visualization service until `build_request` has
accepted the configuration against the current artifact's columns and
column classification.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Type, Union

from pydantic import ValidationError as PydanticValidationError

from datanova.core.errors import (
    ChartStateError,
    InvalidStyle,
    MissingAxis,
    NoActiveSession,
    TypeMismatch,
    UnknownChartType,
    UnknownColumn,
    WorkflowError,
)
from datanova.core.schemas import (
    BarChartRequest,
    ChartDraft,
    ChartImage,
    ChartRequest,
    ChartSessionView,
    ChartStyle,
    DatasetArtifact,
    LineChartRequest,
    PieChartRequest,
    ScatterChartRequest,
)
from datanova.services.client import AnalysisClient
from datanova.services.normalize import to_service_payload
from datanova.services.session import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_ROW_LIMIT = 50
MIN_ROW_LIMIT = 10
MAX_ROW_LIMIT = 1000


@dataclass(frozen=True)
class ChartVariant:
    """Axis requirements of one chart type."""
    model: Type[Any]
    y_required: bool
    y_numeric: bool


CHART_VARIANTS: Dict[str, ChartVariant] = {
    "bar": ChartVariant(BarChartRequest, y_required=True, y_numeric=True),
    "line": ChartVariant(LineChartRequest, y_required=True, y_numeric=True),
    "scatter": ChartVariant(ScatterChartRequest, y_required=True, y_numeric=True),
    "pie": ChartVariant(PieChartRequest, y_required=False, y_numeric=False),
}


def clamp_row_limit(
    row_limit: Optional[int],
    row_count: int,
    default: int = DEFAULT_ROW_LIMIT,
    lower: int = MIN_ROW_LIMIT,
    upper: int = MAX_ROW_LIMIT,
) -> int:
    """
    Clamp a requested row limit to [lower, min(row_count, upper)].

    The lower bound wins for datasets smaller than it.
    """
    limit = default if row_limit is None else row_limit
    return max(lower, min(limit, row_count, upper))


def _coerce_style(style: Union[ChartStyle, Dict[str, Any], None]) -> ChartStyle:
    if style is None:
        return ChartStyle()
    if isinstance(style, ChartStyle):
        return style
    try:
        return ChartStyle.model_validate(style)
    except PydanticValidationError as e:
        problems = "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
        raise InvalidStyle(problems) from e


def build_request(
    artifact: DatasetArtifact,
    chart_type: Optional[str],
    x_axis: Optional[str],
    y_axis: Optional[str] = None,
    row_limit: Optional[int] = None,
    style: Union[ChartStyle, Dict[str, Any], None] = None,
    default_limit: int = DEFAULT_ROW_LIMIT,
    min_limit: int = MIN_ROW_LIMIT,
    max_limit: int = MAX_ROW_LIMIT,
) -> ChartRequest:
    """
    Validate a chart configuration against the artifact and emit a ChartRequest.

    Checks run in order: chart type, missing axis, unknown column, type
    mismatch, style. The row limit is clamped, never rejected. A pie chart
    ignores any Y axis it is given.
    """
    variant = CHART_VARIANTS.get(chart_type or "")
    if variant is None:
        raise UnknownChartType(f"'{chart_type}' is not one of {', '.join(CHART_VARIANTS)}.")

    if not x_axis:
        raise MissingAxis(f"A {chart_type} chart needs an X axis.")
    if variant.y_required and not y_axis:
        raise MissingAxis(f"A {chart_type} chart needs a Y axis.")

    if x_axis not in artifact.columns:
        raise UnknownColumn(f"X axis '{x_axis}' is not a column of {artifact.file_name}.")
    if variant.y_required and y_axis not in artifact.columns:
        raise UnknownColumn(f"Y axis '{y_axis}' is not a column of {artifact.file_name}.")

    if variant.y_numeric and y_axis not in artifact.column_classification.numeric:
        raise TypeMismatch(f"Y axis '{y_axis}' is not numeric.")

    chart_style = _coerce_style(style)
    fields = {
        "x_axis": x_axis,
        "row_limit": clamp_row_limit(row_limit, artifact.row_count, default_limit, min_limit, max_limit),
        "color": chart_style.color,
        "title": chart_style.title,
        "show_grid": chart_style.show_grid,
    }
    if variant.y_required:
        fields["y_axis"] = y_axis
    return variant.model(**fields)


class ChartState(str, Enum):
    UNSELECTED = "unselected"
    CONFIGURING = "configuring"
    REQUESTED = "requested"
    RENDERED = "rendered"
    FAILED = "failed"


_UNSET = object()


class ChartSession:
    """
    One chart being configured and rendered.

    UNSELECTED -> CONFIGURING -> REQUESTED -> RENDERED | FAILED. A rendered or
    failed chart goes back to CONFIGURING when a parameter is edited, or to
    UNSELECTED when the chart type changes. Sessions are independent of each
    other and of uploads; each render works on a snapshot of the artifact.
    """

    def __init__(
        self,
        store: SessionStore,
        default_limit: int = DEFAULT_ROW_LIMIT,
        min_limit: int = MIN_ROW_LIMIT,
        max_limit: int = MAX_ROW_LIMIT,
    ):
        self._store = store
        self._limits = (default_limit, min_limit, max_limit)
        self._token = 0
        self.state = ChartState.UNSELECTED
        self.chart_type: Optional[str] = None
        self.draft = ChartDraft()
        self.request: Optional[ChartRequest] = None
        self.image: Optional[ChartImage] = None
        self.error: Optional[Dict[str, Any]] = None

    def reset(self):
        """Back to UNSELECTED; any in-flight render result will be dropped."""
        self._token += 1
        self.state = ChartState.UNSELECTED
        self.chart_type = None
        self.draft = ChartDraft()
        self.request = None
        self.image = None
        self.error = None

    def select(self, chart_type: str):
        """Pick a chart type. Picking a different one discards the draft."""
        if chart_type not in CHART_VARIANTS:
            raise UnknownChartType(f"'{chart_type}' is not one of {', '.join(CHART_VARIANTS)}.")
        if chart_type == self.chart_type and self.state != ChartState.UNSELECTED:
            return
        self.reset()
        self.chart_type = chart_type
        self.state = ChartState.CONFIGURING
        logger.debug(f"Chart type selected: {chart_type}")

    def configure(self, x_axis=_UNSET, y_axis=_UNSET, row_limit=_UNSET, style=_UNSET):
        """Edit the draft. Only the arguments passed are changed."""
        if self.state == ChartState.UNSELECTED:
            raise ChartStateError("Pick a chart type before configuring it.")
        if self.state == ChartState.REQUESTED:
            raise ChartStateError("Wait for the pending chart before editing it.")

        updates: Dict[str, Any] = {}
        if x_axis is not _UNSET:
            updates["x_axis"] = x_axis
        if y_axis is not _UNSET:
            updates["y_axis"] = y_axis
        if row_limit is not _UNSET:
            updates["row_limit"] = row_limit
        if style is not _UNSET:
            if isinstance(style, dict):
                style = {**self.draft.style.model_dump(), **style}
            updates["style"] = _coerce_style(style)

        self.draft = self.draft.model_copy(update=updates)
        self.state = ChartState.CONFIGURING
        self.image = None
        self.error = None

    async def render(self, client: AnalysisClient) -> Optional[ChartImage]:
        """
        Validate the draft against the current artifact and request the chart.

        Returns None when the session was reset or re-targeted while the
        request was in flight; that late result is dropped.
        """
        if self.state not in (ChartState.CONFIGURING, ChartState.FAILED):
            raise ChartStateError(f"Cannot render a chart that is {self.state.value}.")

        artifact = self._store.get()
        if artifact is None:
            raise NoActiveSession("Upload a dataset before creating charts.")

        default_limit, min_limit, max_limit = self._limits
        try:
            request = build_request(
                artifact,
                self.chart_type,
                self.draft.x_axis,
                self.draft.y_axis,
                self.draft.row_limit,
                self.draft.style,
                default_limit=default_limit,
                min_limit=min_limit,
                max_limit=max_limit,
            )
        except WorkflowError:
            self.state = ChartState.CONFIGURING
            raise

        self._token += 1
        token = self._token
        self.request = request
        self.image = None
        self.error = None
        self.state = ChartState.REQUESTED

        try:
            image = await client.visualize(request, to_service_payload(artifact))
        except WorkflowError as e:
            if token != self._token:
                logger.info("Dropping failure of a superseded chart request")
                return None
            self.state = ChartState.FAILED
            self.error = e.to_response()
            raise

        if token != self._token:
            logger.info("Dropping result of a superseded chart request")
            return None

        self.image = image
        self.state = ChartState.RENDERED
        return image

    def view(self) -> ChartSessionView:
        return ChartSessionView(
            state=self.state.value,
            chart_type=self.chart_type,
            draft=self.draft,
            request=self.request,
            image=self.image,
            error=self.error,
        )
