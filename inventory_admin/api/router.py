from fastapi import APIRouter

from inventory_admin.api.v1.categoriesmgmt import router as categoriesmgmt_router
from inventory_admin.api.v1.productsmgmt import router as productsmgmt_router
from inventory_admin.utils.urls import API_PREFIX

api_router = APIRouter(prefix=API_PREFIX)

api_router.include_router(productsmgmt_router, prefix="/products", tags=["Products"])
api_router.include_router(categoriesmgmt_router, prefix="/categories", tags=["Categories"])
