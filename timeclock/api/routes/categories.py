import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from timeclock.api.deps import DashboardContext, get_dashboard_context
from timeclock.core.database import get_db
from timeclock.core.roles import CategoryType, is_valid_category_type
from timeclock.models import Category
from timeclock.schemas import CategoryCreate, CategoryResponse, CategoryUpdate, object_id
from timeclock.services.geofence import parse_coords_from_map_link

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["Categories"])

GEOFENCE_FIELDS = ("lat", "lng", "radius", "geofence_mode")


def _category_json(category: Category) -> dict:
    return CategoryResponse.model_validate(category).to_json()


def _get_category(db: Session, category_id: str) -> Category:
    object_id(category_id, "category")
    category = db.query(Category).filter(Category.id == category_id).first()
    if category is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return category


def _name_taken(db: Session, type_: str, name: str, exclude_id: Optional[str] = None) -> bool:
    query = db.query(Category.id).filter(
        Category.type == type_, func.lower(Category.name) == name.lower()
    )
    if exclude_id:
        query = query.filter(Category.id != exclude_id)
    return query.first() is not None


def _geofence_values(values: dict) -> dict:
    """Geofence columns from a request body; a map link fills missing coordinates."""
    map_link = values.pop("map_link", None)
    if values.get("lat") is None and values.get("lng") is None and map_link:
        coords = parse_coords_from_map_link(map_link)
        if coords:
            values["lat"], values["lng"] = coords
    return {k: values[k] for k in GEOFENCE_FIELDS if k in values}


@router.get("")
async def list_categories(
    type: Optional[str] = None,
    ctx: DashboardContext = Depends(get_dashboard_context),
    db: Session = Depends(get_db),
):
    query = db.query(Category)
    type = (type or "").strip()
    if type:
        if not is_valid_category_type(type):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid category type")
        query = query.filter(Category.type == type)
    return {"categories": [_category_json(c) for c in query.order_by(Category.name).all()]}


@router.post("")
async def create_category(
    data: CategoryCreate,
    ctx: DashboardContext = Depends(get_dashboard_context),
    db: Session = Depends(get_db),
):
    if _name_taken(db, data.type, data.name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A category with this name already exists for this type",
        )

    category = Category(name=data.name, type=data.type)
    if data.type == CategoryType.LOCATION.value:
        for key, value in _geofence_values(data.model_dump()).items():
            setattr(category, key, value)
    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info("Category %s/%s created by %s", category.type, category.name, ctx.user.username)
    return {"category": _category_json(category)}


@router.get("/{category_id}")
async def get_category(
    category_id: str,
    ctx: DashboardContext = Depends(get_dashboard_context),
    db: Session = Depends(get_db),
):
    return {"category": _category_json(_get_category(db, category_id))}


@router.patch("/{category_id}")
async def update_category(
    category_id: str,
    data: CategoryUpdate,
    ctx: DashboardContext = Depends(get_dashboard_context),
    db: Session = Depends(get_db),
):
    category = _get_category(db, category_id)
    values = data.model_dump(exclude_unset=True)

    name = values.pop("name", None)
    if name is not None and name.lower() != category.name.lower():
        if _name_taken(db, category.type, name, exclude_id=category.id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A category with this name already exists for this type",
            )
    if name is not None:
        category.name = name

    if category.type == CategoryType.LOCATION.value:
        for key, value in _geofence_values(values).items():
            setattr(category, key, value)

    db.commit()
    db.refresh(category)
    return {"category": _category_json(category)}


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    ctx: DashboardContext = Depends(get_dashboard_context),
    db: Session = Depends(get_db),
):
    category = _get_category(db, category_id)
    db.delete(category)
    db.commit()
    logger.info("Category %s deleted by %s", category_id, ctx.user.username)
    return {"success": True}
