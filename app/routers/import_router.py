import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, Query
from fastapi.exceptions import HTTPException

from app.container import get_import_run_service, get_inbox_service
from app.exceptions import (
    ImportProcessingError,
    InvalidInputStructureError,
    MalformedRecordError,
)
from app.models.import_run.dto import ImportResultDto, ImportRunDto
from app.services.entity.import_run_service import ImportRunService
from app.services.inbox_service import InboxService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/import", tags=["SKS register import"])


@router.post("", response_model=ImportResultDto, summary="Import the file waiting in the inbox")
def import_inbox(
    run_id: Annotated[str | None, Query()] = None,
    service: InboxService = Depends(get_inbox_service),
) -> ImportResultDto:
    try:
        return service.import_inbox(run_id)
    except InvalidInputStructureError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except MalformedRecordError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ImportProcessingError as e:
        logger.error(f"Import of inbox failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/runs", response_model=List[ImportRunDto], summary="Most recent import runs")
def get_import_runs(
    limit: Annotated[int, Query(ge=1, le=1000)] = 20,
    run_id: Annotated[str | None, Query()] = None,
    service: ImportRunService = Depends(get_import_run_service),
) -> List[ImportRunDto]:
    if run_id is not None:
        return service.find_by_run_id(run_id)
    return service.get_latest(limit)
