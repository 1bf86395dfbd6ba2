"""API router exposing the capture-to-board workflow per session."""
from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field

from boardflow.capture import ArrayCaptureDevice
from boardflow.errors import BoardUnavailableError, CaptureDeviceError, RegionUnavailableError
from boardflow.pipeline import BoardPipeline, PipelineRun, get_pipeline

router = APIRouter(prefix="/sessions", tags=["sessions"])

Mode = Literal["decision", "response"]


class TextRequest(BaseModel):
    """Request body accepted by the typed transcript endpoint."""

    text: str = Field(..., min_length=1, description="Transcript or structured response to place.")
    mode: Mode = Field("decision", description="Placement mode selecting the target region and palette.")
    region: str | None = Field(None, description="Explicit target region title.")
    structured: bool = Field(False, description="Split on ## headings or ** markers instead of segmenting.")


class PointsRequest(BaseModel):
    """Request body carrying already extracted design points."""

    points: list[str] = Field(..., min_length=1, description="Point texts to classify and place.")
    mode: Mode = "decision"
    region: str | None = None


class PlacementResponse(BaseModel):
    """Aggregate counts for one run."""

    session_id: str
    status: str
    attempted: int
    placed: int
    duplicates: int
    failed: int
    cards_created: int
    cancelled: bool
    no_content: bool = False
    chunks: int = 0
    failed_chunks: int = 0


class CancelResponse(BaseModel):
    session_id: str
    cancelled: bool


class SessionStatusResponse(BaseModel):
    session_id: str
    status: str
    progress: float
    attempted: int
    placed: int
    duplicates: int
    failed: int
    cards_created: int


def _serialise_run(run: PipelineRun, pipeline: BoardPipeline) -> PlacementResponse:
    session = pipeline.sessions.get(run.session_id)
    return PlacementResponse(
        session_id=run.session_id,
        status=session.status if session else "completed",
        attempted=run.report.attempted,
        placed=run.report.placed,
        duplicates=run.report.duplicates,
        failed=run.report.failed,
        cards_created=run.report.cards_created,
        cancelled=run.report.cancelled,
        no_content=run.capture.no_content,
        chunks=run.capture.chunks,
        failed_chunks=run.capture.failed_chunks,
    )


def _unavailable(exc: Exception) -> HTTPException:
    return HTTPException(status_code=503, detail=str(exc))


@router.post("/{session_id}/text", response_model=PlacementResponse)
async def place_text(
    session_id: str,
    request: TextRequest,
    pipeline: BoardPipeline = Depends(get_pipeline),
) -> PlacementResponse:
    """Segment a typed transcript and place its points on the board."""

    if not request.text.strip():
        raise HTTPException(status_code=422, detail="Text must not be empty")
    try:
        run = await pipeline.process_text(
            session_id,
            request.text,
            mode=request.mode,
            region_name=request.region,
            structured=request.structured,
        )
    except (BoardUnavailableError, RegionUnavailableError) as exc:
        raise _unavailable(exc) from exc
    return _serialise_run(run, pipeline)


@router.post("/{session_id}/points", response_model=PlacementResponse)
async def place_points(
    session_id: str,
    request: PointsRequest,
    pipeline: BoardPipeline = Depends(get_pipeline),
) -> PlacementResponse:
    """Classify and place already extracted points."""

    try:
        run = await pipeline.process_points(
            session_id,
            request.points,
            mode=request.mode,
            region_name=request.region,
        )
    except (BoardUnavailableError, RegionUnavailableError) as exc:
        raise _unavailable(exc) from exc
    return _serialise_run(run, pipeline)


@router.post("/{session_id}/audio", response_model=PlacementResponse)
async def place_audio(
    session_id: str,
    file: UploadFile = File(...),
    mode: Mode = Form("decision"),
    region: str | None = Form(None),
    pipeline: BoardPipeline = Depends(get_pipeline),
) -> PlacementResponse:
    """Transcribe an uploaded WAV recording chunk by chunk and place the points."""

    data = await file.read()
    try:
        device = ArrayCaptureDevice.from_wav_bytes(data)
    except CaptureDeviceError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    try:
        run = await pipeline.run_capture(session_id, device, mode=mode, region_name=region)
    except CaptureDeviceError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except (BoardUnavailableError, RegionUnavailableError) as exc:
        raise _unavailable(exc) from exc
    return _serialise_run(run, pipeline)


@router.post("/{session_id}/cancel", response_model=CancelResponse)
async def cancel_session(
    session_id: str,
    pipeline: BoardPipeline = Depends(get_pipeline),
) -> CancelResponse:
    """Request cooperative cancellation of the session's current run."""

    if not pipeline.cancel(session_id):
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
    return CancelResponse(session_id=session_id, cancelled=True)


@router.get("/{session_id}", response_model=SessionStatusResponse)
async def session_status(
    session_id: str,
    pipeline: BoardPipeline = Depends(get_pipeline),
) -> SessionStatusResponse:
    session = pipeline.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
    return SessionStatusResponse(
        session_id=session.session_id,
        status=session.status,
        progress=session.progress.percent,
        attempted=session.report.attempted,
        placed=session.report.placed,
        duplicates=session.report.duplicates,
        failed=session.report.failed,
        cards_created=session.report.cards_created,
    )
