from fastapi import APIRouter

from companydata_api.routers.v1 import company_data

v1_router = APIRouter(prefix="/v1")

v1_router.include_router(company_data.router)
