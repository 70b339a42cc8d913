from fastapi import APIRouter

from onboarding.api.routes import training

api_router = APIRouter()

api_router.include_router(training.router)
