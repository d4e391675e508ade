"""
ScholarSense FastAPI Service
GET /api?url=<profile url> scrapes one researcher profile
"""

import os
from datetime import datetime
from typing import Any, Dict, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from scholarsense import ScholarScraper
from scholarsense.config import config
from scholarsense.exceptions import ScrapeError, ValidationError
from scholarsense.spider.playwright_session import PlaywrightSessionProvider
from scholarsense.utils.logger import get_logger

api_logger = get_logger("api")


# ==================== Lifespan Management ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    api_logger.info("Starting ScholarSense API...")

    if getattr(app.state, "scraper", None) is None:
        provider = PlaywrightSessionProvider()
        await provider.start()
        app.state.provider = provider
        app.state.scraper = ScholarScraper(provider)

    api_logger.info("ScholarSense API started successfully")

    yield

    api_logger.info("Shutting down ScholarSense API...")
    provider = getattr(app.state, "provider", None)
    if provider is not None:
        await provider.stop()
    api_logger.info("ScholarSense API shut down")


# ==================== FastAPI Application ====================

app = FastAPI(
    title="ScholarSense API",
    description="Researcher profile and publication scraping",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with its status and duration"""
    start_time = datetime.utcnow()
    response = await call_next(request)
    duration = (datetime.utcnow() - start_time).total_seconds()
    api_logger.info(
        f"{request.method} {request.url.path} - {response.status_code} - {duration:.3f}s"
    )
    return response


# ==================== Pydantic Models ====================

class APIResponse(BaseModel):
    """Standard API response"""
    success: bool
    message: str
    data: Optional[Any] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ErrorResponse(BaseModel):
    """Structured failure description"""
    success: bool = False
    error: str
    message: str
    details: Optional[str] = None


def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[str] = None,
) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


# ==================== Endpoints ====================

@app.get("/health")
async def health() -> Dict[str, Any]:
    """Health check"""
    return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}


@app.get("/api")
async def scrape_profile(
    request: Request,
    url: Optional[str] = Query(None, description="Google Scholar profile URL"),
    deadline: Optional[float] = Query(None, gt=0, description="Cancel after this many seconds"),
    sort_by_discovery: Optional[bool] = Query(None, description="Order publications by list position"),
):
    """Scrape a researcher profile and all of its publications"""
    scraper: ScholarScraper = request.app.state.scraper

    try:
        result = await scraper.scrape_async(
            url,
            deadline=deadline,
            sort_by_discovery=sort_by_discovery,
        )
    except ValidationError as e:
        api_logger.warning(f"Rejected request: {e.message}")
        return _error_response(status.HTTP_400_BAD_REQUEST, e.category, e.message)
    except ScrapeError as e:
        api_logger.error(f"Error during scraping: {e.message}")
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            e.category,
            "Failed to scrape data",
            details=e.message,
        )
    except Exception as e:
        api_logger.opt(exception=e).error(f"Unexpected error during scraping: {e}")
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal",
            "Failed to scrape data",
            details=str(e) if config.debug else None,
        )

    response = APIResponse(
        success=True,
        message="Data successfully scraped",
        data=result.to_dict(),
    )
    return JSONResponse(content=response.model_dump(mode="json"))


# ==================== Error Handlers ====================

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    api_logger.error(f"Unhandled exception on {request.url.path}: {exc}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal",
        "Internal server error",
        details=str(exc) if config.debug else None,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level=config.log_level.lower())
