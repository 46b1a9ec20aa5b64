"""Catalog business logic: categories and products"""
from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from storefront.models.product import Category, Product
from storefront.models.schemas import CategoryCreate, CategoryUpdate, ProductCreate, ProductUpdate
from storefront.services.errors import ConflictError
from typing import List, Optional
from opentelemetry import trace
import logging

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _offer_price(value: Optional[float]) -> Optional[float]:
    # An offer price of zero means "no offer"
    return value if value else None


class CategoryService:
    """Category service for business logic"""

    @staticmethod
    def get_category(db: Session, category_id: str) -> Optional[Category]:
        """Get category by ID"""
        return db.query(Category).filter(Category.id == category_id).first()

    @staticmethod
    def get_category_by_name(db: Session, name: str) -> Optional[Category]:
        return db.query(Category).filter(Category.name == name.strip()).first()

    @staticmethod
    def get_categories(db: Session) -> List[Category]:
        """List categories ordered by name"""
        with tracer.start_as_current_span("catalog_service.get_categories") as span:
            categories = db.query(Category).order_by(Category.name).all()
            span.set_attribute("categories.returned", len(categories))
            return categories

    @staticmethod
    def get_or_create_category(db: Session, name: str) -> Category:
        """Find a category by name or stage a new one (caller commits)"""
        category = CategoryService.get_category_by_name(db, name)
        if category:
            return category

        category = Category(name=name.strip())
        db.add(category)
        db.flush()
        logger.info(f"Created category {category.id}: {category.name}")
        return category

    @staticmethod
    def create_category(db: Session, category_data: CategoryCreate) -> Category:
        """Create new category"""
        with tracer.start_as_current_span("catalog_service.create_category") as span:
            if CategoryService.get_category_by_name(db, category_data.name):
                raise ConflictError(f"Category {category_data.name} already exists")

            category = Category(
                name=category_data.name.strip(),
                description=category_data.description,
                image_url=category_data.image_url
            )
            db.add(category)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise ConflictError(f"Category {category_data.name} already exists")
            db.refresh(category)

            span.set_attribute("category.id", category.id)
            logger.info(f"Created category {category.id}: {category.name}")
            return category

    @staticmethod
    def update_category(db: Session, category_id: str, category_data: CategoryUpdate) -> Optional[Category]:
        """Update existing category"""
        category = CategoryService.get_category(db, category_id)
        if not category:
            return None

        update_data = category_data.model_dump(exclude_unset=True)
        name = update_data.pop("name", None)
        if name is not None:
            other = CategoryService.get_category_by_name(db, name)
            if other and other.id != category_id:
                raise ConflictError(f"Category {name} already exists")
            category.name = name.strip()

        for field, value in update_data.items():
            setattr(category, field, value)

        db.commit()
        db.refresh(category)
        return category

    @staticmethod
    def delete_category(db: Session, category_id: str) -> bool:
        """Delete a category; refused while products still reference it"""
        with tracer.start_as_current_span("catalog_service.delete_category") as span:
            span.set_attribute("category.id", category_id)

            if not CategoryService.get_category(db, category_id):
                return False

            try:
                db.query(Category).filter(Category.id == category_id).delete(synchronize_session=False)
                db.commit()
            except IntegrityError as e:
                db.rollback()
                logger.warning(f"Cannot delete category {category_id}: {e.orig}")
                raise ConflictError("Category is used by products; delete dependent data first")

            db.expunge_all()
            logger.info(f"Deleted category {category_id}")
            return True


class ProductService:
    """Product service for business logic"""

    @staticmethod
    def get_product(db: Session, product_id: str) -> Optional[Product]:
        """Get product by ID"""
        with tracer.start_as_current_span("catalog_service.get_product") as span:
            span.set_attribute("product.id", product_id)
            return db.query(Product).filter(Product.id == product_id).first()

    @staticmethod
    def get_products(
        db: Session,
        q: Optional[str] = None,
        category: Optional[str] = None
    ) -> List[Product]:
        """
        List products, newest first.

        ``q`` matches name or description case-insensitively; ``category``
        matches a category id or name.
        """
        with tracer.start_as_current_span("catalog_service.get_products") as span:
            query = db.query(Product)

            if q:
                pattern = f"%{q.strip()}%"
                query = query.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
                span.set_attribute("filter.q", q)

            if category:
                query = query.join(Category).filter(or_(Category.id == category, Category.name == category))
                span.set_attribute("filter.category", category)

            products = query.order_by(Product.created_at.desc(), Product.name).all()
            span.set_attribute("products.returned", len(products))
            return products

    @staticmethod
    def create_product(db: Session, product_data: ProductCreate) -> Product:
        """Create new product, creating its category when needed"""
        with tracer.start_as_current_span("catalog_service.create_product") as span:
            try:
                category = CategoryService.get_or_create_category(db, product_data.category)
                product = Product(
                    name=product_data.name,
                    description=product_data.description,
                    price=product_data.price,
                    offer_price=_offer_price(product_data.offer_price),
                    stock=product_data.stock,
                    image_urls=list(product_data.image_urls),
                    category_id=category.id
                )
                db.add(product)
                db.commit()
            except Exception:
                db.rollback()
                raise
            db.refresh(product)

            span.set_attribute("product.id", product.id)
            logger.info(f"Created product {product.id}: {product.name}")
            return product

    @staticmethod
    def update_product(db: Session, product_id: str, product_data: ProductUpdate) -> Optional[Product]:
        """Update existing product"""
        product = ProductService.get_product(db, product_id)
        if not product:
            return None

        update_data = product_data.model_dump(exclude_unset=True)

        category_name = update_data.pop("category", None)
        if category_name:
            product.category_id = CategoryService.get_or_create_category(db, category_name).id
        if "offer_price" in update_data:
            update_data["offer_price"] = _offer_price(update_data["offer_price"])

        for field, value in update_data.items():
            if value is None and field in ("name", "price", "stock", "image_urls"):
                continue
            setattr(product, field, value)

        db.commit()
        db.refresh(product)
        return product

    @staticmethod
    def delete_product(db: Session, product_id: str) -> bool:
        """Delete a product; refused while orders or carts reference it"""
        with tracer.start_as_current_span("catalog_service.delete_product") as span:
            span.set_attribute("product.id", product_id)

            if not ProductService.get_product(db, product_id):
                return False

            try:
                db.query(Product).filter(Product.id == product_id).delete(synchronize_session=False)
                db.commit()
            except IntegrityError as e:
                db.rollback()
                logger.warning(f"Cannot delete product {product_id}: {e.orig}")
                raise ConflictError("Product is referenced by orders or carts; delete dependent data first")

            db.expunge_all()
            logger.info(f"Deleted product {product_id}")
            return True
