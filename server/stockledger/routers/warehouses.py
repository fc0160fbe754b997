from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from stockledger.auth import get_organization_context
from stockledger.db import get_db
from stockledger.errors import ConflictError, NotFoundError
from stockledger.models import Location, Organization, Warehouse
from stockledger.sources import schemas
from stockledger.sources.service import create_source, delete_source, get_source, list_sources, update_source


router = APIRouter(prefix="/api/organizations/{organization_id}", tags=["warehouses"])


def _load(db: Session, model, organization_id: int, source_id: int):
    try:
        return get_source(db, model, organization_id, source_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


def _save(db: Session, action, *args):
    try:
        source = action(db, *args)
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    db.commit()
    db.refresh(source)
    return source


def _delete(db: Session, source) -> Response:
    try:
        delete_source(db, source)
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/warehouses", response_model=List[schemas.WarehouseResponse])
def list_warehouses(organization: Organization = Depends(get_organization_context), db: Session = Depends(get_db)):
    return list_sources(db, Warehouse, organization.id)


@router.post("/warehouses", response_model=schemas.WarehouseResponse, status_code=status.HTTP_201_CREATED)
def create_warehouse(
    payload: schemas.WarehouseCreate,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    return _save(db, create_source, Warehouse, organization.id, payload.model_dump())


@router.get("/warehouses/{warehouse_id}", response_model=schemas.WarehouseResponse)
def get_warehouse(
    warehouse_id: int,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    return _load(db, Warehouse, organization.id, warehouse_id)


@router.put("/warehouses/{warehouse_id}", response_model=schemas.WarehouseResponse)
def update_warehouse(
    warehouse_id: int,
    payload: schemas.WarehouseUpdate,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    warehouse = _load(db, Warehouse, organization.id, warehouse_id)
    return _save(db, update_source, warehouse, payload.model_dump(exclude_unset=True))


@router.delete("/warehouses/{warehouse_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_warehouse(
    warehouse_id: int,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    return _delete(db, _load(db, Warehouse, organization.id, warehouse_id))


@router.get("/locations", response_model=List[schemas.LocationResponse])
def list_locations(organization: Organization = Depends(get_organization_context), db: Session = Depends(get_db)):
    return list_sources(db, Location, organization.id)


@router.post("/locations", response_model=schemas.LocationResponse, status_code=status.HTTP_201_CREATED)
def create_location(
    payload: schemas.LocationCreate,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    return _save(db, create_source, Location, organization.id, payload.model_dump())


@router.get("/locations/{location_id}", response_model=schemas.LocationResponse)
def get_location(
    location_id: int,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    return _load(db, Location, organization.id, location_id)


@router.put("/locations/{location_id}", response_model=schemas.LocationResponse)
def update_location(
    location_id: int,
    payload: schemas.LocationUpdate,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    location = _load(db, Location, organization.id, location_id)
    return _save(db, update_source, location, payload.model_dump(exclude_unset=True))


@router.delete("/locations/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_location(
    location_id: int,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    return _delete(db, _load(db, Location, organization.id, location_id))
