"""
FastAPI Web Application for Race Delta Analysis

This module provides a REST API over the alignment engine. Clients post the
sample streams decoded from two recordings together with the selected time
window, and receive aligned time-delta, speed and yaw series, lap/run
candidates, or CSV/GeoJSON exports.

The API is stateless: every request recomputes from the posted samples.
"""

import logging
import os
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

import racedelta
from racedelta import constants


# ============================================================================
# APPLICATION SETUP
# ============================================================================

logging.basicConfig(
    level=os.environ.get(constants.LOG_LEVEL_ENV, "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Race Delta")


# ============================================================================
# REQUEST MODELS
# ============================================================================

class PositionIn(BaseModel):
    cts: float
    lat: float
    lng: float
    speed2D: Optional[float] = None
    speed3D: Optional[float] = None


class MotionIn(BaseModel):
    cts: float
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class CoordinateIn(BaseModel):
    lat: float
    lon: float

    def to_coordinate(self) -> racedelta.Coordinate:
        return racedelta.Coordinate(self.lat, self.lon)


class WindowIn(BaseModel):
    start_ms: float
    finish_ms: float


class TraceIn(BaseModel):
    positions: List[PositionIn]
    motion: List[MotionIn] = Field(default_factory=list)

    def to_trace(self) -> racedelta.Trace:
        positions = racedelta.parse_position_samples(p.model_dump() for p in self.positions)
        motion = racedelta.parse_motion_samples(m.model_dump() for m in self.motion)
        return racedelta.Trace.from_samples(positions, motion)


class CompareRequest(BaseModel):
    reference: TraceIn
    comparison: TraceIn
    window: WindowIn
    comparison_window: Optional[WindowIn] = None
    yaw_axis: str = constants.MOTION_YAW_AXIS


class SeekRequest(CompareRequest):
    point: CoordinateIn


class LapsRequest(BaseModel):
    positions: List[PositionIn]
    line: CoordinateIn
    radius_m: float = constants.DEFAULT_CROSSING_RADIUS_M


class RunsRequest(BaseModel):
    positions: List[PositionIn]
    start: CoordinateIn
    finish: CoordinateIn
    radius_m: float = constants.DEFAULT_CROSSING_RADIUS_M


class BoundsRequest(BaseModel):
    positions: List[PositionIn]
    start: CoordinateIn
    finish: CoordinateIn


# ============================================================================
# HELPERS
# ============================================================================

def parse_positions(rows: List[PositionIn]) -> List[racedelta.PositionSample]:
    return racedelta.parse_position_samples(p.model_dump() for p in rows)


def to_window(window: Optional[WindowIn]) -> Optional[racedelta.TimeWindow]:
    if window is None:
        return None
    return racedelta.TimeWindow(window.start_ms, window.finish_ms)


def align(request: CompareRequest) -> racedelta.Alignment:
    """
    Run the alignment for a compare request.

    Raises:
        HTTPException: If the request violates the engine's input contract
        (status 422) or the windows leave nothing to align (status 404).
    """
    try:
        aligned = racedelta.align_traces(
            request.reference.to_trace(),
            request.comparison.to_trace(),
            to_window(request.window),
            comparison_window=to_window(request.comparison_window),
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    if not aligned.deltas:
        raise HTTPException(status_code=404, detail="No overlapping samples to align")
    return aligned


# ============================================================================
# API ROUTES - ANALYSIS
# ============================================================================

@app.post("/api/compare")
def compare(request: CompareRequest):
    """
    Align two traces and return the full comparison payload.

    Returns:
        Dictionary from racedelta.build_comparison().
    """
    try:
        return racedelta.build_comparison(
            request.reference.to_trace(),
            request.comparison.to_trace(),
            to_window(request.window),
            comparison_window=to_window(request.comparison_window),
            yaw_axis=request.yaw_axis,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@app.post("/api/seek")
def seek(request: SeekRequest):
    """
    Find the aligned sample nearest a clicked map point.

    Returns:
        Dictionary with the aligned sample and the playback position of
        both traces (reference_s, comparison_s) at that place on course.
    """
    deltas = align(request).deltas
    record = racedelta.nearest_delta(deltas, request.point.lat, request.point.lon)
    return {"sample": record.to_dict(), **racedelta.seek_times(record, to_window(request.window))}


@app.post("/api/bounds")
def comparison_bounds(request: BoundsRequest):
    """
    Locate the start and finish of a course in a comparison trace.

    Returns:
        Dictionary with start_index, finish_index, start_ms and finish_ms.
    """
    try:
        located = racedelta.find_comparison_bounds(
            parse_positions(request.positions),
            request.start.to_coordinate(),
            request.finish.to_coordinate(),
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return located.to_dict()


@app.post("/api/laps")
def laps(request: LapsRequest):
    """
    Detect circuit-mode laps for one trace.

    Returns:
        Dictionary with crossings, laps and fastest_lap.
    """
    try:
        positions = parse_positions(request.positions)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return racedelta.build_lap_candidates(positions, request.line.to_coordinate(), request.radius_m)


@app.post("/api/runs")
def runs(request: RunsRequest):
    """
    Detect point-to-point runs for one trace.

    Returns:
        Dictionary with runs and fastest_run.
    """
    try:
        positions = parse_positions(request.positions)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return racedelta.build_run_candidates(
        positions,
        request.start.to_coordinate(),
        request.finish.to_coordinate(),
        request.radius_m,
    )


# ============================================================================
# API ROUTES - EXPORT
# ============================================================================

@app.post("/api/export/deltas")
def export_deltas(request: CompareRequest):
    """
    Export the aligned time-delta series as CSV.

    Returns:
        PlainTextResponse: CSV file with Content-Disposition header
        for download. Filename: time_delta.csv
    """
    deltas = align(request).deltas
    headers = {"Content-Disposition": "attachment; filename=time_delta.csv"}
    return PlainTextResponse(
        racedelta.export_deltas_csv(deltas),
        media_type="text/csv",
        headers=headers
    )


@app.post("/api/export/map")
def export_map(request: CompareRequest):
    """
    Export the course map coloured by closing rate as GeoJSON.

    Returns:
        JSONResponse: GeoJSON FeatureCollection.
    """
    deltas = align(request).deltas
    try:
        geojson = racedelta.deltas_to_geojson(deltas, racedelta.compute_closing_rate(deltas))
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return JSONResponse(geojson, media_type="application/geo+json")


# ============================================================================
# RUN INSTRUCTIONS
# ============================================================================
# Run with: uvicorn app:app --reload
