from datetime import datetime
from typing import Annotated, List

from fastapi import APIRouter, Depends, Query
from fastapi.exceptions import HTTPException

from app.container import get_institution_service
from app.models.institution.dto import InstitutionDto, InstitutionHistoryDto
from app.models.institution.record import kind_display_name, kind_from_display_name
from app.services.entity.institution_service import InstitutionService

router = APIRouter(prefix="/institutions", tags=["Hospitals and departments"])


@router.get("", response_model=List[InstitutionDto])
def find_institutions(
    kind: Annotated[str | None, Query(description="Sygehus or Afdeling")] = None,
    valid_at: Annotated[datetime | None, Query()] = None,
    service: InstitutionService = Depends(get_institution_service),
) -> List[InstitutionDto]:
    if kind is not None:
        try:
            kind = kind_display_name(kind_from_display_name(kind))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    return service.find(kind=kind, valid_at=valid_at)


@router.get("/{identifier}", response_model=InstitutionDto)
def get_institution(
    identifier: str,
    service: InstitutionService = Depends(get_institution_service),
) -> InstitutionDto:
    return service.get_one(identifier)


@router.get("/{identifier}/history", response_model=List[InstitutionHistoryDto])
def get_institution_history(
    identifier: str,
    service: InstitutionService = Depends(get_institution_service),
) -> List[InstitutionHistoryDto]:
    history = service.get_history(identifier)
    if len(history) == 0:
        raise HTTPException(status_code=404, detail=f"Institution {identifier} not found")
    return history
