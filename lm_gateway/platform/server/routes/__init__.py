from fastapi import APIRouter

from lm_gateway.platform.server.routes.gateway import gateway_router

root = APIRouter()
root.include_router(gateway_router)
