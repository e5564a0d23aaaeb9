"""HTTP and WebSocket route definitions for the service."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from app.schemas import (
    HealthReport,
    HistoryRecordOut,
    HumidityOut,
    ReadingOut,
    ServiceStatus,
    TemperatureOut,
)
from datastore.history_table import StoreError
from models.records import Reading
from services.pipeline import SensorPipeline, build_default_pipeline

logger = logging.getLogger(__name__)

router = APIRouter()


def get_pipeline() -> SensorPipeline:
    return build_default_pipeline()


def _require_reading(pipeline: SensorPipeline) -> Reading:
    reading = pipeline.latest.get()
    if reading is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No data yet",
        )
    return reading


@router.get(
    "/data",
    response_model=ReadingOut,
    summary="Most recent reading received from the sensor.",
)
async def get_current_reading(
    pipeline: SensorPipeline = Depends(get_pipeline),
) -> ReadingOut:
    return ReadingOut.from_reading(_require_reading(pipeline))


@router.get(
    "/temperature",
    response_model=TemperatureOut,
    summary="Most recent temperature.",
)
async def get_temperature(
    pipeline: SensorPipeline = Depends(get_pipeline),
) -> TemperatureOut:
    return TemperatureOut(temperature=_require_reading(pipeline).temperature)


@router.get(
    "/humidity",
    response_model=HumidityOut,
    summary="Most recent humidity.",
)
async def get_humidity(
    pipeline: SensorPipeline = Depends(get_pipeline),
) -> HumidityOut:
    return HumidityOut(humidity=_require_reading(pipeline).humidity)


@router.get(
    "/history",
    response_model=list[HistoryRecordOut],
    summary="Sampled history for the look-back window, oldest first.",
)
async def get_history(
    hours: Optional[float] = Query(
        None, gt=0, description="Look-back in hours; defaults to the configured window."
    ),
    pipeline: SensorPipeline = Depends(get_pipeline),
) -> list[HistoryRecordOut]:
    window = pipeline.history.window
    if hours is not None:
        requested = timedelta(hours=hours)
        if requested > window:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Look-back may not exceed {window.total_seconds() / 3600:g} hours.",
            )
        window = requested
    try:
        records = await asyncio.to_thread(pipeline.history.records, window=window)
    except StoreError as exc:
        logger.exception("History query failed", extra={"error": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="History store unavailable",
        ) from exc
    return [HistoryRecordOut.from_record(record) for record in records]


@router.get(
    "/health",
    response_model=HealthReport,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(
    pipeline: SensorPipeline = Depends(get_pipeline),
) -> HealthReport:
    ingesting = pipeline.ingesting
    error = pipeline.ingestion_error
    return HealthReport(
        status=ServiceStatus.ok if ingesting else ServiceStatus.degraded,
        ingesting=ingesting,
        subscribers=pipeline.hub.subscriber_count,
        detail=str(error) if error is not None else None,
    )


@router.get(
    "/",
    summary="Root endpoint points at health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}


@router.websocket("/ws")
async def live_updates(
    websocket: WebSocket,
    pipeline: SensorPipeline = Depends(get_pipeline),
) -> None:
    await websocket.accept()
    subscriber = pipeline.hub.subscribe(websocket.send_text)
    try:
        # Clients only listen; reading keeps the disconnect observable.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        pipeline.hub.unsubscribe(subscriber)
