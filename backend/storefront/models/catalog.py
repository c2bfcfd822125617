"""Catalog models: categories and products.

Products reference their category by slug. Nested product data (images,
variants, specifications) is stored as JSON documents on the row.
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.sql import func

from storefront.db.session import Base


class Category(Base):
    """Database model for a product category.

    Attributes:
        id: Primary key.
        name: Unique category name.
        description: Optional description.
        icon: Display icon (emoji).
        color: Tailwind gradient classes (``from-* to-*``).
        slug: Unique URL slug derived from the name.
        created_at: Record creation timestamp.
        updated_at: Last modification timestamp.
    """

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True, index=True)
    description = Column(String(500), nullable=False, default="")
    icon = Column(String(16), nullable=False, default="📦")
    color = Column(String(100), nullable=False, default="from-gray-500 to-gray-600")
    slug = Column(String(64), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class Product(Base):
    """Database model for a catalog product."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    price = Column(Float, nullable=False, index=True)
    category = Column(String(64), nullable=False, index=True)
    images = Column(JSON, nullable=False, default=list)
    stock = Column(Integer, nullable=False, default=0)
    sku = Column(String(64), nullable=False, unique=True, index=True)
    slug = Column(String(128), nullable=False, unique=True, index=True)
    featured = Column(Boolean, nullable=False, default=False, index=True)
    variants = Column(JSON, nullable=False, default=list)
    specifications = Column(JSON, nullable=False, default=list)
    rating = Column(Float, nullable=False, default=0)
    reviews = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
