from typing import Any

from fastapi import APIRouter, Depends

from app.container import get_import_scheduler
from app.services.scheduler import Scheduler

router = APIRouter(prefix="/scheduler", tags=["Scheduled inbox imports"])


@router.post("/start", summary="Starts polling the inbox in the background")
def start_scheduled_import(service: Scheduler = Depends(get_import_scheduler)) -> None:
    return service.start()


@router.post("/stop", summary="Stops polling the inbox")
def stop_scheduled_import(service: Scheduler = Depends(get_import_scheduler)) -> None:
    return service.stop()


@router.get("/runner_logs")
def get_runner_history_logs(
    service: Scheduler = Depends(get_import_scheduler),
) -> list[dict[str, Any]]:
    return service.get_runner_history()
