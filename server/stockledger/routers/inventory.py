from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from stockledger.auth import get_current_user, get_organization_context
from stockledger.balances import schemas as balance_schemas
from stockledger.balances.service import get_balances
from stockledger.db import get_db
from stockledger.errors import IMMUTABLE_MOVEMENT_DETAIL, MovementNotFoundError, NotFoundError
from stockledger.ledger import schemas
from stockledger.ledger.service import (
    DraftLineOutcome,
    create_event,
    delete_draft_line,
    get_event,
    list_movements,
    update_draft_line,
)
from stockledger.models import InventoryMovementEvent, Organization, User


router = APIRouter(prefix="/api/organizations/{organization_id}", tags=["inventory"])


def _to_response(event: InventoryMovementEvent) -> schemas.MovementEventDetailResponse:
    return schemas.MovementEventDetailResponse(
        event=schemas.MovementEventResponse.model_validate(event),
        lines=[schemas.MovementLineResponse.model_validate(line) for line in event.lines],
    )


def _parse_id_list(raw: Optional[str], label: str) -> Optional[list[int]]:
    if not raw:
        return None
    try:
        return [int(value) for value in raw.split(",") if value.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label}") from None


@router.get("/inventory-movements", response_model=List[schemas.MovementListRow])
def list_inventory_movements(
    limit: Optional[int] = None,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    return list_movements(db, organization.id, limit)


@router.post(
    "/inventory-movements",
    response_model=schemas.MovementEventDetailResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_inventory_movement(
    payload: schemas.MovementEventCreate,
    organization: Organization = Depends(get_organization_context),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    data = payload.model_dump()
    lines = data.pop("lines")
    try:
        event = create_event(db, organization.id, lines=lines, created_by_user_id=current_user.id, **data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    db.commit()
    db.refresh(event)
    return _to_response(event)


@router.get("/inventory-movement-events/{event_id}", response_model=schemas.MovementEventDetailResponse)
def get_inventory_movement_event(
    event_id: int,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    try:
        event = get_event(db, organization.id, event_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return _to_response(event)


@router.put("/inventory-movements/{line_id}", response_model=schemas.MovementLineResponse)
def update_inventory_movement_line(
    line_id: int,
    payload: schemas.MovementLineUpdate,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    try:
        result = update_draft_line(
            db,
            organization.id,
            line_id,
            event_fields=payload.event.model_dump(exclude_unset=True),
            line_fields=payload.line.model_dump(),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    if result.outcome == DraftLineOutcome.NOT_FOUND:
        raise HTTPException(status_code=404, detail=str(MovementNotFoundError()))
    if result.outcome == DraftLineOutcome.IMMUTABLE:
        raise HTTPException(status_code=409, detail=IMMUTABLE_MOVEMENT_DETAIL)

    db.commit()
    db.refresh(result.line)
    return result.line


@router.delete("/inventory-movements/{line_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_inventory_movement_line(
    line_id: int,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    result = delete_draft_line(db, organization.id, line_id)
    if result.outcome == DraftLineOutcome.NOT_FOUND:
        raise HTTPException(status_code=404, detail=str(MovementNotFoundError()))
    if result.outcome == DraftLineOutcome.IMMUTABLE:
        raise HTTPException(status_code=409, detail=IMMUTABLE_MOVEMENT_DETAIL)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/inventory-balances", response_model=List[balance_schemas.BalanceRow])
def list_inventory_balances(
    node_ids: Optional[str] = None,
    item_ids: Optional[str] = None,
    statuses: Optional[str] = None,
    from_date: Optional[datetime] = Query(None),
    to_date: Optional[datetime] = Query(None),
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    try:
        return get_balances(
            db,
            organization.id,
            node_ids=_parse_id_list(node_ids, "node_ids"),
            item_ids=_parse_id_list(item_ids, "item_ids"),
            statuses=statuses.split(",") if statuses else None,
            from_date=from_date,
            to_date=to_date,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
