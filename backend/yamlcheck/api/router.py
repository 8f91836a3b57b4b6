"""Main API router - combines all endpoint routers."""

from fastapi import APIRouter

from yamlcheck.api.health import router as health_router
from yamlcheck.api.validation import router as validation_router
from yamlcheck.api.conversion import router as conversion_router
from yamlcheck.api.suggestions import router as suggestions_router

api_router = APIRouter()

# Health check
api_router.include_router(health_router, tags=["Health"])

# Single-document validation
api_router.include_router(validation_router, tags=["Validation"])

# YAML/JSON conversion and schema checks
api_router.include_router(conversion_router, tags=["Conversion"])

# Provider suggestions and fixes
api_router.include_router(suggestions_router, tags=["Suggestions"])
