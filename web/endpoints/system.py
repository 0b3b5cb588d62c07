"""System health and bracket format endpoints."""

import logging

from fastapi import APIRouter

from tournaments import format_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.get("/health")
async def health_check():
    """Health check endpoint to verify API is running."""
    return {"isAlive": True}


@router.get("/formats")
async def get_formats():
    """Get bracket formats that can be generated."""
    return {"formats": format_registry.get_format_descriptions()}
