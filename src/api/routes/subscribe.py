from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, get_settings
from src.db.connection import get_db
from src.handlers.signup import (
    SignupError,
    SignupForm,
    SignupStorageError,
    handle_signup,
    resolve_source_address,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/subscribe")
async def subscribe(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    session: AsyncSession = Depends(get_db),
    email: Annotated[str | None, Form()] = None,
    website: Annotated[str | None, Form()] = None,
) -> JSONResponse:
    source_address = resolve_source_address(request, trust_forwarded_for=settings.trust_forwarded_for)
    try:
        result = await handle_signup(
            session=session,
            form=SignupForm(email=email, website=website),
            source_address=source_address,
            settings=settings,
        )
    except SignupStorageError:
        logger.exception("Subscribe failed while talking to the database")
        return JSONResponse({"error": SignupStorageError.public_message}, status_code=500)
    except SignupError as exc:
        return JSONResponse({"error": exc.public_message}, status_code=exc.status_code)
    except Exception:
        logger.exception("Subscribe failed unexpectedly")
        return JSONResponse({"error": SignupError.public_message}, status_code=500)
    return JSONResponse({"success": result.success, "redirect": result.redirect}, status_code=200)
