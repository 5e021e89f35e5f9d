"""Product catalog and training document endpoints."""

from __future__ import annotations

from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_product_catalog, get_training_library
from ..schemas import (
    Product,
    ProductDeleteRequest,
    ProductSaveResponse,
    SuccessResponse,
    TrainingFile,
    TrainingFileContent,
)
from ..storage import ProductCatalog, TrainingLibrary


router = APIRouter(tags=["catalog"])


@router.get("/products", response_model=List[Product])
async def list_products(catalog: ProductCatalog = Depends(get_product_catalog)) -> List[Product]:
    return catalog.list()


@router.post("/products", response_model=ProductSaveResponse)
async def save_product(payload: Product, catalog: ProductCatalog = Depends(get_product_catalog)) -> ProductSaveResponse:
    """Create a product, or replace the one with the same id."""

    return ProductSaveResponse(product=catalog.upsert(payload))


@router.delete("/products", response_model=SuccessResponse)
async def delete_product(
    payload: ProductDeleteRequest,
    catalog: ProductCatalog = Depends(get_product_catalog),
) -> SuccessResponse:
    catalog.delete(payload.id)
    return SuccessResponse()


@router.get(
    "/training-documents",
    response_model=Union[TrainingFileContent, List[TrainingFile]],
)
async def training_documents(
    path: Optional[str] = Query(default=None, description="Return this document instead of the listing."),
    category: Optional[str] = Query(default=None),
    library: TrainingLibrary = Depends(get_training_library),
) -> Union[TrainingFileContent, List[TrainingFile]]:
    if path:
        return library.read(path)
    return library.list_files(category)


@router.post("/training-documents", response_model=TrainingFileContent)
async def save_training_document(
    payload: TrainingFileContent,
    library: TrainingLibrary = Depends(get_training_library),
) -> TrainingFileContent:
    return library.write(payload.path, payload.content)
