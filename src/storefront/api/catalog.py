"""FastAPI routes for categories and products"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from storefront.db.database import get_db
from storefront.services.auth import Principal, require_admin
from storefront.services.catalog_service import CategoryService, ProductService
from storefront.services.errors import ConflictError
from storefront.models.schemas import (
    CategoryCreate, CategoryUpdate, CategoryResponse,
    ProductCreate, ProductUpdate, ProductResponse, MessageResponse
)
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/categories", response_model=List[CategoryResponse])
def list_categories(db: Session = Depends(get_db)):
    """List categories ordered by name"""
    return CategoryService.get_categories(db)


@router.get("/categories/{category_id}", response_model=CategoryResponse)
def get_category(category_id: str, db: Session = Depends(get_db)):
    """Get category by ID"""
    category = CategoryService.get_category(db, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    category: CategoryCreate,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a category (admin)"""
    try:
        return CategoryService.create_category(db, category)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.put("/categories/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: str,
    category_data: CategoryUpdate,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update a category (admin)"""
    try:
        category = CategoryService.update_category(db, category_id, category_data)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.delete("/categories/{category_id}", response_model=MessageResponse)
def delete_category(
    category_id: str,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a category (admin); 409 while products use it"""
    try:
        deleted = CategoryService.delete_category(db, category_id)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Category not found")
    return MessageResponse(message="Category deleted")


@router.get("/products", response_model=List[ProductResponse])
def list_products(
    q: Optional[str] = Query(None, description="Text searched in name and description"),
    category: Optional[str] = Query(None, description="Category id or name"),
    db: Session = Depends(get_db)
):
    """
    List products

    - **q**: free-text filter (optional)
    - **category**: category id or name (optional)
    """
    return ProductService.get_products(db, q=q, category=category)


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(product_id: str, db: Session = Depends(get_db)):
    """Get product by ID"""
    product = ProductService.get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    product: ProductCreate,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a product (admin); an unknown category name is created"""
    logger.info(f"Creating product {product.name} in category {product.category}")
    return ProductService.create_product(db, product)


@router.put("/products/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    product_data: ProductUpdate,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update a product (admin)"""
    product = ProductService.update_product(db, product_id, product_data)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.delete("/products/{product_id}", response_model=MessageResponse)
def delete_product(
    product_id: str,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a product (admin); 409 while orders or carts reference it"""
    try:
        deleted = ProductService.delete_product(db, product_id)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Product not found")
    return MessageResponse(message="Product deleted")
