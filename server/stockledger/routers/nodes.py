from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from stockledger.auth import get_organization_context
from stockledger.db import get_db
from stockledger.errors import ConflictError, NotFoundError
from stockledger.models import Organization
from stockledger.nodes import schemas
from stockledger.nodes.service import list_by_org
from stockledger.nodes.sync import register_node


router = APIRouter(prefix="/api/organizations/{organization_id}", tags=["nodes"])


@router.get("/nodes", response_model=List[schemas.NodeResponse])
def list_nodes(
    types: Optional[str] = None,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    type_filter = types.split(",") if types else None
    try:
        return list_by_org(db, organization.id, type_filter)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/nodes", response_model=schemas.NodeResponse, status_code=status.HTTP_201_CREATED)
def create_node(
    payload: schemas.NodeCreate,
    organization: Organization = Depends(get_organization_context),
    db: Session = Depends(get_db),
):
    try:
        node = register_node(db, organization.id, **payload.model_dump())
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    db.commit()
    db.refresh(node)
    return node
