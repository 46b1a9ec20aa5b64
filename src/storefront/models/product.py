"""
Catalog database models
"""
from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from storefront.db.database import Base
import uuid


class Category(Base):
    """Product category"""
    __tablename__ = "categories"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(120), unique=True, nullable=False, index=True)
    description = Column(Text)
    image_url = Column(String(500))
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    products = relationship("Product", back_populates="category", passive_deletes=True)
    
    def __repr__(self):
        return f"<Category(id={self.id}, name={self.name})>"


class Product(Base):
    """Product model"""
    __tablename__ = "products"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    price = Column(Numeric(12, 2), nullable=False)
    offer_price = Column(Numeric(12, 2))
    stock = Column(Integer, default=0, nullable=False)
    image_urls = Column(JSON, default=list, nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False, index=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    category = relationship("Category", back_populates="products")
    
    @property
    def main_image(self) -> str:
        return self.image_urls[0] if self.image_urls else ""

    @property
    def category_name(self):
        return self.category.name if self.category else None
    
    def __repr__(self):
        return f"<Product(id={self.id}, name={self.name}, price={self.price})>"
