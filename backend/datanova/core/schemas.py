from datetime import datetime
from enum import Enum
from typing import Annotated, List, Optional, Any, Dict, Union, Literal
from pydantic import BaseModel, Field

Scalar = Union[str, int, float, bool, None]

ChartType = Literal["bar", "line", "pie", "scatter"]

HEAD_ROWS_LIMIT = 10


class ColumnClassification(BaseModel):
    numeric: List[str] = []
    categorical: List[str] = []


class Resource(BaseModel):
    title: str
    url: str


class DatasetArtifact(BaseModel):
    file_name: str
    uploaded_at: datetime
    row_count: int = Field(default=0, ge=0)
    column_count: int = Field(default=0, ge=0)
    columns: List[str] = []
    column_classification: ColumnClassification = ColumnClassification()
    summary: str = ""
    insights: List[str] = []
    resources: List[Resource] = []
    head_rows: List[Dict[str, Scalar]] = []
    stats: Dict[str, Scalar] = {}


class ArtifactPatch(BaseModel):
    """Partial artifact; None means 'not present in the response'."""
    file_name: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    row_count: Optional[int] = Field(default=None, ge=0)
    column_count: Optional[int] = Field(default=None, ge=0)
    columns: Optional[List[str]] = None
    column_classification: Optional[ColumnClassification] = None
    summary: Optional[str] = None
    insights: Optional[List[str]] = None
    resources: Optional[List[Resource]] = None
    head_rows: Optional[List[Dict[str, Scalar]]] = None
    stats: Optional[Dict[str, Scalar]] = None

    def present_fields(self) -> Dict[str, Any]:
        """Top-level fields carried by this patch, as model values."""
        return {name: getattr(self, name) for name in type(self).model_fields if getattr(self, name) is not None}

    def overlay(self, other: "ArtifactPatch") -> "ArtifactPatch":
        """Combine two patches; fields present in `other` win."""
        return self.model_copy(update=other.present_fields())


class SummaryLength(str, Enum):
    CONCISE = "concise"
    MEDIUM = "medium"
    LENGTHY = "lengthy"


class SummaryTone(str, Enum):
    PROFESSIONAL = "professional"
    TECHNICAL = "technical"
    CASUAL = "casual"


class SummaryAudience(str, Enum):
    GENERAL = "general"
    EXECUTIVE = "executive"
    TECHNICAL = "technical"
    ACADEMIC = "academic"


class SummaryParams(BaseModel):
    model_config = {"frozen": True}

    length: SummaryLength = SummaryLength.MEDIUM
    tone: SummaryTone = SummaryTone.PROFESSIONAL
    audience: SummaryAudience = SummaryAudience.GENERAL

    def as_form(self) -> Dict[str, str]:
        return {"length": self.length.value, "tone": self.tone.value, "audience": self.audience.value}


class ChartStyle(BaseModel):
    color: str = Field(default="#F97316", pattern=r"^#[0-9a-fA-F]{6}$")
    title: str = Field(default="", max_length=200)
    show_grid: bool = True


class _ChartRequestBase(BaseModel):
    x_axis: str
    row_limit: int
    color: str
    title: str = ""
    show_grid: bool = True

    def to_payload(self) -> Dict[str, Any]:
        """Field names the visualization endpoint expects."""
        return {
            "chart_type": self.chart_type,
            "x_axis": self.x_axis,
            "y_axis": getattr(self, "y_axis", None),
            "limit": self.row_limit,
            "color": self.color,
            "title": self.title,
            "show_grid": self.show_grid,
        }


class BarChartRequest(_ChartRequestBase):
    chart_type: Literal["bar"] = "bar"
    y_axis: str


class LineChartRequest(_ChartRequestBase):
    chart_type: Literal["line"] = "line"
    y_axis: str


class ScatterChartRequest(_ChartRequestBase):
    chart_type: Literal["scatter"] = "scatter"
    y_axis: str


class PieChartRequest(_ChartRequestBase):
    chart_type: Literal["pie"] = "pie"
    y_axis: None = None


ChartRequest = Annotated[
    Union[BarChartRequest, LineChartRequest, ScatterChartRequest, PieChartRequest],
    Field(discriminator="chart_type"),
]


class ChartImage(BaseModel):
    chart_type: ChartType
    ref: str  # http(s) URL or data: URL


class ChartDraft(BaseModel):
    """Axis bindings and style being edited in a chart session."""
    x_axis: Optional[str] = None
    y_axis: Optional[str] = None
    row_limit: Optional[int] = None
    style: ChartStyle = ChartStyle()


class ChartSessionView(BaseModel):
    state: str
    chart_type: Optional[ChartType] = None
    draft: ChartDraft = ChartDraft()
    request: Optional[ChartRequest] = None
    image: Optional[ChartImage] = None
    error: Optional[Dict[str, Any]] = None


class SessionView(BaseModel):
    artifact: DatasetArtifact
    last_applied_params: Optional[SummaryParams] = None


class ChartSelection(BaseModel):
    chart_type: Optional[str] = None  # None resets the chart


class ChartConfigUpdate(BaseModel):
    x_axis: Optional[str] = None
    y_axis: Optional[str] = None
    row_limit: Optional[int] = None
    style: Optional[Dict[str, Any]] = None
