"""Protected admin routes.

Every route here requires a valid access token. Role requirements:

    viewer+ : GET/PUT /admin/profile
    editor+ : catalog writes, /admin/stats/*
    admin   : /admin/admins*, /admin/profile/activity,
              POST /admin/products/bulk-delete
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.auth_helper import (
    admin_only,
    any_admin,
    editor_or_admin,
    get_current_admin,
)
from storefront.core.errors import NotFound, Unauthenticated, ValidationFailed
from storefront.db.session import get_db
from storefront.schemas.admin import (
    AdminCreate,
    AdminOut,
    AdminUpdate,
    AuditLogOut,
    ProfileUpdate,
)
from storefront.schemas.auth import AdminProfile, TokenData
from storefront.schemas.catalog import (
    BulkDeleteRequest,
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    ProductCreate,
    ProductOut,
    ProductUpdate,
)
from storefront.schemas.common import Pagination, success
from storefront.services import account_service, audit_service, catalog_service

router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(get_current_admin)]
)

Db = Annotated[AsyncSession, Depends(get_db)]
Viewer = Annotated[TokenData, Depends(any_admin)]
Editor = Annotated[TokenData, Depends(editor_or_admin)]
Admin = Annotated[TokenData, Depends(admin_only)]


# Profile


@router.get("/profile")
async def get_profile(current: Viewer, db: Db):
    """Return the caller's own profile.

    Args:
        current: Claims of the signed-in account (any role).
        db: Async database session (dependency-injected).

    Returns:
        dict: ``{success, message, data: AdminProfile}``.

    Raises:
        NotFound: 404 if the account was removed after the token was issued.
    """
    account = await account_service.get_by_id(db, current.account_id)
    if account is None:
        raise NotFound("Admin not found")
    return success("Profile retrieved", AdminProfile.model_validate(account))


@router.put("/profile")
async def update_profile(body: ProfileUpdate, current: Viewer, db: Db):
    """Update own name and/or password.

    A new password is only accepted together with the current one.
    """
    account = await account_service.get_by_id(
        db, current.account_id, with_password=body.new_password is not None
    )
    if account is None:
        raise NotFound("Admin not found")
    if body.new_password is not None and not await account_service.check_password(
        account, body.current_password
    ):
        raise Unauthenticated("Current password is incorrect")

    account = await account_service.update_account(
        db, account, name=body.name, password=body.new_password
    )
    return success("Profile updated", AdminProfile.model_validate(account))


@router.get("/profile/activity")
async def profile_activity(
    current: Admin,
    db: Db,
    email: str | None = None,
    ip_address: Annotated[str | None, Query(alias="ipAddress")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    """Audit records, newest first. Defaults to the caller's own email."""
    if email is None and ip_address is None:
        email = current.email
    items, total = await audit_service.list_events(db, email, ip_address, page, limit)
    return success(
        f"Retrieved {len(items)} activity records",
        {
            "items": [AuditLogOut.model_validate(i) for i in items],
            "pagination": Pagination.build(page, limit, total),
        },
    )


# Admin accounts


@router.get("/admins")
async def list_admins(
    _: Admin,
    db: Db,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    """List admin accounts, newest first.

    Args:
        page: 1-based page number.
        limit: Page size, at most 100.
        db: Async database session (dependency-injected).

    Returns:
        dict: ``{items: [AdminOut], pagination}``.
    """
    accounts, total = await account_service.list_accounts(db, page, limit)
    return success(
        f"Retrieved {len(accounts)} admins",
        {
            "items": [AdminOut.model_validate(a) for a in accounts],
            "pagination": Pagination.build(page, limit, total),
        },
    )


@router.post("/admins", status_code=status.HTTP_201_CREATED)
async def create_admin(body: AdminCreate, _: Admin, db: Db):
    """Create an admin account.

    Args:
        body: Name, email, password, role and active flag.
        db: Async database session (dependency-injected).

    Returns:
        dict: The created account as ``AdminOut`` (201).

    Raises:
        Conflict: 409 if the email is already registered.
    """
    account = await account_service.create_account(
        db,
        name=body.name,
        email=body.email,
        role=body.role,
        is_active=body.is_active,
        password=body.password,
    )
    return success("Admin created successfully", AdminOut.model_validate(account))


@router.put("/admins/{admin_id}")
async def update_admin(admin_id: int, body: AdminUpdate, _: Admin, db: Db):
    """Partially update another admin; omitted fields stay unchanged.

    Args:
        admin_id: Primary key of the account to change.
        body: Fields to change. A new password is hashed before storing.
        db: Async database session (dependency-injected).

    Returns:
        dict: The updated account as ``AdminOut``.

    Raises:
        NotFound: 404 if no account has ``admin_id``.
    """
    account = await account_service.get_or_404(db, admin_id)
    account = await account_service.update_account(
        db,
        account,
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role,
        is_active=body.is_active,
    )
    return success("Admin updated successfully", AdminOut.model_validate(account))


@router.delete("/admins/{admin_id}")
async def deactivate_admin(admin_id: int, current: Admin, db: Db):
    """Deactivate an account. Accounts are never physically deleted."""
    if admin_id == current.account_id:
        raise ValidationFailed("You cannot deactivate your own account")
    account = await account_service.get_or_404(db, admin_id)
    account = await account_service.deactivate_account(db, account)
    return success("Admin deactivated successfully", AdminOut.model_validate(account))


@router.post("/admins/{admin_id}/unlock")
async def unlock_admin(admin_id: int, _: Admin, db: Db):
    """Clear the failed-attempt counter and any lock on an account.

    Args:
        admin_id: Primary key of the account to unlock.
        db: Async database session (dependency-injected).

    Returns:
        dict: The unlocked account as ``AdminOut``.
    """
    account = await account_service.get_or_404(db, admin_id)
    account = await account_service.reset_lockout(db, account)
    return success("Admin unlocked successfully", AdminOut.model_validate(account))


# Catalog


@router.post("/products", status_code=status.HTTP_201_CREATED)
async def create_product(body: ProductCreate, _: Editor, db: Db):
    """Create a product; the slug is derived from the name when omitted.

    Args:
        body: Product fields, validated by ``ProductCreate``.
        db: Async database session (dependency-injected).

    Returns:
        dict: The created product as ``ProductOut`` (201).
    """
    product = await catalog_service.create_product(db, body)
    return success("Product created successfully", ProductOut.model_validate(product))


@router.post("/products/bulk-delete")
async def bulk_delete_products(body: BulkDeleteRequest, _: Admin, db: Db):
    """Delete several products at once.

    Returns:
        dict: ``{deletedCount}``; unknown ids are ignored.
    """
    deleted = await catalog_service.bulk_delete_products(db, body.ids)
    return success(f"Deleted {deleted} products", {"deletedCount": deleted})


@router.put("/products/{product_id}")
async def update_product(product_id: int, body: ProductUpdate, _: Editor, db: Db):
    """Partially update a product.

    Args:
        product_id: Primary key of the product.
        body: Fields to change.
        db: Async database session (dependency-injected).

    Returns:
        dict: The updated product as ``ProductOut``.

    Raises:
        NotFound: 404 if the product does not exist.
    """
    product = await catalog_service.update_product(db, product_id, body)
    return success("Product updated successfully", ProductOut.model_validate(product))


@router.delete("/products/{product_id}")
async def delete_product(product_id: int, _: Editor, db: Db):
    """Delete one product.

    Raises:
        NotFound: 404 if the product does not exist.
    """
    await catalog_service.delete_product(db, product_id)
    return success("Product deleted successfully")


@router.post("/categories", status_code=status.HTTP_201_CREATED)
async def create_category(body: CategoryCreate, _: Editor, db: Db):
    """Create a category.

    Args:
        body: Category fields, validated by ``CategoryCreate``.
        db: Async database session (dependency-injected).

    Returns:
        dict: The created category as ``CategoryOut`` (201).

    Raises:
        Conflict: 409 if the name or slug is taken.
    """
    category = await catalog_service.create_category(db, body)
    return success("Category created successfully", CategoryOut.model_validate(category))


@router.put("/categories/{category_id}")
async def update_category(category_id: int, body: CategoryUpdate, _: Editor, db: Db):
    """Partially update a category.

    Returns:
        dict: The updated category as ``CategoryOut``.
    """
    category = await catalog_service.update_category(db, category_id, body)
    return success("Category updated successfully", CategoryOut.model_validate(category))


@router.delete("/categories/{category_id}")
async def delete_category(category_id: int, _: Editor, db: Db):
    """Delete a category.

    Args:
        category_id: Primary key of the category.
        db: Async database session (dependency-injected).

    Returns:
        dict: ``{success, message}``.

    Raises:
        NotFound: 404 if the category does not exist.
    """
    await catalog_service.delete_category(db, category_id)
    return success("Category deleted successfully")


# Statistics


@router.get("/stats/overview")
async def stats_overview(_: Editor, db: Db):
    """Dashboard counters for the catalog and admin accounts.

    Returns:
        dict: Product, category, featured and out-of-stock counts, total
            stock, inventory value and active admins.
    """
    return success("Dashboard overview", await catalog_service.overview_stats(db))


@router.get("/stats/products")
async def stats_products(_: Editor, db: Db):
    """Per-category product breakdown for the dashboard."""
    return success("Product statistics", await catalog_service.product_stats(db))
