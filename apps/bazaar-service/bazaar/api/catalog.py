"""
Category and location lookups used by the browse and posting screens.
"""
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from bazaar.db import models, schemas
from bazaar.db.database import get_db
from bazaar.db.repositories import catalog as repo_catalog

router = APIRouter(tags=["catalog"])


def build_category_tree(categories: List[models.Category]) -> List[schemas.CategoryTree]:
    """Nest a flat, already-ordered category list under its parents.

    Children whose parent is missing from the list (e.g. inactive) are dropped.
    """
    nodes: Dict[int, schemas.CategoryTree] = {
        c.id: schemas.CategoryTree.model_validate(c).model_copy(update={"children": []})
        for c in categories
    }
    roots: List[schemas.CategoryTree] = []
    for category in categories:
        node = nodes[category.id]
        if category.parent_id is None:
            roots.append(node)
        elif category.parent_id in nodes:
            nodes[category.parent_id].children.append(node)
    return roots


@router.get("/categories", response_model=List[schemas.CategoryTree])
def list_categories_endpoint(db: Session = Depends(get_db)):
    return build_category_tree(repo_catalog.list_categories(db, active_only=True))


@router.get("/locations", response_model=List[schemas.Location])
def list_locations_endpoint(
    parent_id: Optional[int] = None,
    type: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return repo_catalog.list_locations(db, parent_id=parent_id, type=type)


@router.get("/locations/{location_id}/breadcrumb", response_model=List[schemas.Location])
def location_breadcrumb_endpoint(location_id: int, db: Session = Depends(get_db)):
    if repo_catalog.get_location(db, location_id) is None:
        raise HTTPException(status_code=404, detail="Location not found")
    return repo_catalog.get_location_breadcrumb(db, location_id)
