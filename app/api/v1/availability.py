from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.v1.schemas import (
    AvailableDatesResponse,
    AvailableSlotsResponse,
    ScheduleResponse,
    SlotSchema,
)
from app.application.exceptions import InvalidInputError
from app.application.use_cases.availability import AvailabilityResolver
from app.application.utils.schedule_rules import parse_duration_type
from app.wiring.dependencies import get_availability_resolver

router = APIRouter(prefix="/availability")
logger = logging.getLogger(__name__)


def parse_day(value: str) -> date:
    try:
        if len(value) != 10:
            raise ValueError(value)
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidInputError("Invalid date (expected YYYY-MM-DD)") from None


@router.get("/schedule", response_model=ScheduleResponse)
def get_schedule(resolver: AvailabilityResolver = Depends(get_availability_resolver)):
    return ScheduleResponse(**resolver.schedule_info())


@router.get("/dates", response_model=AvailableDatesResponse)
def get_available_dates(
    year: int = Query(...),
    month: int = Query(...),
    type: str = Query("regular"),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
):
    try:
        kind = parse_duration_type(type)
        dates = resolver.available_dates(year, month, kind)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return AvailableDatesResponse(
        year=year,
        month=month,
        type=kind,
        available_dates=[d.isoformat() for d in dates],
    )


@router.get("/slots", response_model=AvailableSlotsResponse)
def get_available_slots(
    date: str = Query(...),
    type: str = Query("regular"),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
):
    try:
        kind = parse_duration_type(type)
        day = parse_day(date)
        durations = resolver.durations(kind)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    response = AvailableSlotsResponse(
        date=day.isoformat(),
        type=kind,
        duration_display_minutes=durations.display,
        duration_blocked_minutes=durations.blocked,
        slots=[],
    )
    if resolver.is_past_day(day):
        response.message = "This date is in the past"
        return response

    response.slots = [SlotSchema.from_slot(slot) for slot in resolver.available_slots(day, kind)]
    return response
