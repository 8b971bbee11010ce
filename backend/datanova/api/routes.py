import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile
from datanova.core.errors import ChartStateError, ErrorCodes, NoActiveSession, get_error_response
from datanova.core.logging import NO_REQUEST_ID
from datanova.core.schemas import (
    ChartConfigUpdate,
    ChartSelection,
    ChartSessionView,
    DatasetArtifact,
    SessionView,
    SummaryAudience,
    SummaryLength,
    SummaryParams,
    SummaryTone,
)
from datanova.services.export import EXPORT_FORMATS, ExportFile, export_artifact, export_chart_image
from datanova.services.workspace import Workspace

logger = logging.getLogger(__name__)

router = APIRouter()


def get_workspace(request: Request) -> Workspace:
    """Get the workspace from app state using dependency injection."""
    return request.app.state.workspace


def _download(export: ExportFile) -> Response:
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'}
    )


def _unsupported_export(request: Request, detail: str) -> HTTPException:
    error_info = get_error_response(ErrorCodes.UNSUPPORTED_EXPORT, detail)
    error_info['correlation_id'] = getattr(request.state, 'correlation_id', NO_REQUEST_ID)
    return HTTPException(status_code=400, detail=error_info)


@router.get("/health")
async def health_check():
    return {"status": "ok"}


@router.get("/session", response_model=SessionView)
async def get_session(workspace: Workspace = Depends(get_workspace)):
    """The current dataset, restored from local storage after a restart."""
    artifact = workspace.store.get()
    if artifact is None:
        raise NoActiveSession()
    return SessionView(artifact=artifact, last_applied_params=workspace.store.last_applied_params)


@router.delete("/session", status_code=204)
async def clear_session(workspace: Workspace = Depends(get_workspace)):
    workspace.store.clear()
    workspace.chart.reset()
    return Response(status_code=204)


@router.post("/upload", response_model=DatasetArtifact)
async def upload_file(
    file: UploadFile = File(...),
    length: Optional[SummaryLength] = Form(None),
    tone: Optional[SummaryTone] = Form(None),
    audience: Optional[SummaryAudience] = Form(None),
    workspace: Workspace = Depends(get_workspace),
):
    """
    Upload a CSV file and make its analysis the current dataset.

    length, tone and audience are optional; any that are given are sent along
    and the missing ones take their defaults.
    """
    params = None
    if length or tone or audience:
        params = SummaryParams(
            **{name: value for name, value in (("length", length), ("tone", tone), ("audience", audience)) if value}
        )

    content = await file.read()
    artifact = await workspace.uploader.upload(file.filename, content, params)
    if artifact is None:
        raise NoActiveSession("The session was cleared while the file was being analyzed.")
    return artifact


@router.post("/summary", response_model=DatasetArtifact)
async def regenerate_summary(params: SummaryParams, workspace: Workspace = Depends(get_workspace)):
    """Regenerate the summary of the current dataset with new parameters."""
    artifact = await workspace.regenerator.regenerate(params)
    if artifact is None:
        raise NoActiveSession("The session was cleared while the summary was being generated.")
    return artifact


@router.get("/chart", response_model=ChartSessionView)
async def get_chart(workspace: Workspace = Depends(get_workspace)):
    return workspace.chart.view()


@router.put("/chart", response_model=ChartSessionView)
async def select_chart(selection: ChartSelection, workspace: Workspace = Depends(get_workspace)):
    """Pick a chart type; a null chart type resets the chart."""
    if selection.chart_type is None:
        workspace.chart.reset()
    else:
        workspace.chart.select(selection.chart_type)
    return workspace.chart.view()


@router.patch("/chart", response_model=ChartSessionView)
async def configure_chart(update: ChartConfigUpdate, workspace: Workspace = Depends(get_workspace)):
    """Edit axis bindings, row limit or style. Only the fields sent change."""
    workspace.chart.configure(**update.model_dump(include=update.model_fields_set))
    return workspace.chart.view()


@router.post("/chart/render", response_model=ChartSessionView)
async def render_chart(workspace: Workspace = Depends(get_workspace)):
    """Validate the chart against the current dataset and request the image."""
    await workspace.chart.render(workspace.client)
    return workspace.chart.view()


@router.get("/export/chart")
async def export_chart(request: Request, workspace: Workspace = Depends(get_workspace)):
    """Download the rendered chart image."""
    image = workspace.chart.image
    if image is None:
        raise ChartStateError("Render a chart before saving it.")
    artifact = workspace.store.get()
    file_name = artifact.file_name if artifact else "dataset"
    try:
        export = export_chart_image(image, file_name)
    except ValueError as e:
        raise _unsupported_export(request, str(e))
    return _download(export)


@router.get("/export/{fmt}")
async def export_session(fmt: str, request: Request, workspace: Workspace = Depends(get_workspace)):
    """Download the current dataset as txt, json, md, png or pdf."""
    fmt = fmt.lower()
    if fmt not in EXPORT_FORMATS:
        raise _unsupported_export(request, f"Unknown format '{fmt}'.")
    artifact = workspace.store.get()
    if artifact is None:
        raise NoActiveSession()
    return _download(export_artifact(artifact, fmt))
