"""Schemas for catalog requests and responses."""

from datetime import datetime

from pydantic import Field, field_validator

from storefront.schemas.common import CamelModel


def _check_gradient(value: str | None) -> str | None:
    if value is not None and not ("from-" in value and "to-" in value):
        raise ValueError("Color must be a valid Tailwind gradient format")
    return value


class CategoryBase(CamelModel):
    description: str = Field(default="", max_length=500)
    icon: str = Field(default="📦", min_length=1, max_length=16)
    color: str = "from-gray-500 to-gray-600"


class CategoryCreate(CategoryBase):
    """Request body for creating a category."""

    name: str = Field(min_length=2, max_length=50)
    slug: str | None = None

    check_color = field_validator("color")(_check_gradient)


class CategoryUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=2, max_length=50)
    description: str | None = Field(default=None, max_length=500)
    icon: str | None = Field(default=None, min_length=1, max_length=16)
    color: str | None = None

    check_color = field_validator("color")(_check_gradient)


class CategoryOut(CategoryBase):
    id: int
    name: str
    slug: str
    product_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProductImage(CamelModel):
    url: str = Field(min_length=1)
    alt: str = ""
    is_primary: bool = False


class ProductVariant(CamelModel):
    name: str = Field(min_length=1)
    values: list[str] = Field(min_length=1)


class ProductSpecification(CamelModel):
    name: str = Field(min_length=1)
    value: str = Field(min_length=1)


class ProductCreate(CamelModel):
    """Request body for creating a product."""

    name: str = Field(min_length=2, max_length=100)
    description: str = Field(default="", max_length=2000)
    price: float = Field(gt=0)
    category: str = Field(min_length=1)
    images: list[ProductImage] = Field(default_factory=list, max_length=10)
    stock: int = Field(default=0, ge=0)
    sku: str = Field(min_length=3)
    slug: str | None = None
    featured: bool = False
    variants: list[ProductVariant] = Field(default_factory=list)
    specifications: list[ProductSpecification] = Field(default_factory=list)
    rating: float = Field(default=0, ge=0, le=5)
    reviews: int = Field(default=0, ge=0)

    @field_validator("sku")
    @classmethod
    def upper_sku(cls, value: str) -> str:
        return value.strip().upper()


class ProductUpdate(CamelModel):
    """Partial product update; omitted fields are left alone."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    price: float | None = Field(default=None, gt=0)
    category: str | None = Field(default=None, min_length=1)
    images: list[ProductImage] | None = Field(default=None, max_length=10)
    stock: int | None = Field(default=None, ge=0)
    sku: str | None = Field(default=None, min_length=3)
    featured: bool | None = None
    variants: list[ProductVariant] | None = None
    specifications: list[ProductSpecification] | None = None
    rating: float | None = Field(default=None, ge=0, le=5)
    reviews: int | None = Field(default=None, ge=0)

    @field_validator("sku")
    @classmethod
    def upper_sku(cls, value: str | None) -> str | None:
        return value.strip().upper() if value is not None else None


class ProductOut(CamelModel):
    id: int
    name: str
    description: str
    price: float
    category: str
    images: list[ProductImage]
    stock: int
    sku: str
    slug: str
    featured: bool
    variants: list[ProductVariant]
    specifications: list[ProductSpecification]
    rating: float
    reviews: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BulkDeleteRequest(CamelModel):
    ids: list[int] = Field(min_length=1)
