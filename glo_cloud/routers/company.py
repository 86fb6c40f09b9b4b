# glo_cloud/routers/company.py

import os
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from ..config import settings
from ..dependencies import get_db
from ..logging_config import get_logger
from ..services import company as company_service

router = APIRouter(prefix="/api", tags=["company"])
logger = get_logger(__name__)


@router.get("/company")
async def get_public_company(db: AsyncSession = Depends(get_db)):
    """Name and logo for the login page; no authentication"""
    try:
        return await company_service.public_company_info(db)
    except SQLAlchemyError as e:
        logger.error("Failed to load company settings: %s", e)
        return {"company_name": settings.DEFAULT_COMPANY_NAME, "company_logo": None}


@router.get("/favicon")
async def get_favicon(db: AsyncSession = Depends(get_db)):
    row = await company_service.get_company_settings(db)
    if row and row.company_logo:
        path = company_service.logo_file_path(row.company_logo)
        if os.path.isfile(path):
            return FileResponse(
                path,
                media_type=company_service.logo_content_type(row.company_logo),
                headers={"Cache-Control": "public, max-age=3600"},
            )

    if os.path.isfile(settings.DEFAULT_FAVICON):
        return FileResponse(settings.DEFAULT_FAVICON, media_type="image/x-icon")

    raise HTTPException(status_code=404, detail="Favicon not found")
