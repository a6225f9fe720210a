"""
Health check endpoint.
Verifies the metadata store, the staging directory and the media tools.
"""
import os
import shutil

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tubely.database import get_db

router = APIRouter()


@router.get("")
async def health_check(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    The database and a writable staging directory are required. Missing
    ffprobe/ffmpeg binaries are reported but only break video uploads, so
    they don't fail the check.
    """
    settings = request.app.state.settings
    staging = request.app.state.ingestion_service.staging
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "staging": "unknown",
        "tools": {},
    }

    try:
        await db.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except SQLAlchemyError as e:
        health_status["database"] = f"error: {e}"
        health_status["status"] = "unhealthy"

    if os.access(staging.directory, os.W_OK):
        health_status["staging"] = "writable"
    else:
        health_status["staging"] = f"error: {staging.directory} is not writable"
        health_status["status"] = "unhealthy"

    for tool, binary in (("ffprobe", settings.ffprobe_path), ("ffmpeg", settings.ffmpeg_path)):
        health_status["tools"][tool] = "available" if shutil.which(binary) else "missing"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
