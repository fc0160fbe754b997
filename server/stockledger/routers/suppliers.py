from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from stockledger.auth import get_organization_context
from stockledger.db import get_db
from stockledger.errors import ConflictError, NotFoundError
from stockledger.models import Customer, Organization, Supplier
from stockledger.sources import schemas
from stockledger.sources.service import create_source, delete_source, get_source, list_sources, update_source


router = APIRouter(prefix="/api/organizations/{organization_id}", tags=["suppliers"])


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


@router.get("/suppliers", response_model=List[schemas.SupplierResponse])
def list_suppliers(organization: Organization = Depends(get_organization_context), db: Session = Depends(get_db)):
    return list_sources(db, Supplier, organization.id)


@router.post("/suppliers", response_model=schemas.SupplierResponse, status_code=status.HTTP_201_CREATED)
def create_supplier(
    payload: schemas.SupplierCreate,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    return _save(db, create_source, Supplier, organization.id, payload.model_dump())


@router.get("/suppliers/{supplier_id}", response_model=schemas.SupplierResponse)
def get_supplier(
    supplier_id: int,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    return _load(db, Supplier, organization.id, supplier_id)


@router.put("/suppliers/{supplier_id}", response_model=schemas.SupplierResponse)
def update_supplier(
    supplier_id: int,
    payload: schemas.SupplierUpdate,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    supplier = _load(db, Supplier, organization.id, supplier_id)
    return _save(db, update_source, supplier, payload.model_dump(exclude_unset=True))


@router.delete("/suppliers/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supplier(
    supplier_id: int,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    return _delete(db, _load(db, Supplier, organization.id, supplier_id))


@router.get("/customers", response_model=List[schemas.CustomerResponse])
def list_customers(organization: Organization = Depends(get_organization_context), db: Session = Depends(get_db)):
    return list_sources(db, Customer, organization.id)


@router.post("/customers", response_model=schemas.CustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: schemas.CustomerCreate,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    return _save(db, create_source, Customer, organization.id, payload.model_dump())


@router.get("/customers/{customer_id}", response_model=schemas.CustomerResponse)
def get_customer(
    customer_id: int,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    return _load(db, Customer, organization.id, customer_id)


@router.put("/customers/{customer_id}", response_model=schemas.CustomerResponse)
def update_customer(
    customer_id: int,
    payload: schemas.CustomerUpdate,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    customer = _load(db, Customer, organization.id, customer_id)
    return _save(db, update_source, customer, payload.model_dump(exclude_unset=True))


@router.delete("/customers/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(
    customer_id: int,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    return _delete(db, _load(db, Customer, organization.id, customer_id))
