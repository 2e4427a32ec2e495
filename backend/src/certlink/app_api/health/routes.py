"""Health check endpoint"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from certlink.shared.config import AppConfig
from ..certificates.dependencies import get_config

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(config: AppConfig = Depends(get_config)):
    return {
        "success": True,
        "message": "Certificate Management API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": config.environment,
    }
