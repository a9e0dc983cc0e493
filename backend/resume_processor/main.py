"""Application entrypoint: sets up FastAPI app, CORS, logging and registers API routers.

Pipeline logic lives in services/; this module only wires the HTTP surface.
"""
import logging
import sys
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from resume_processor.api.routers import candidates as candidates_router
from resume_processor.api.routers import health as health_router
from resume_processor.api.routers import llm as llm_router
from resume_processor.api.routers import resumes as resumes_router
from resume_processor.core.config import settings


# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logging.getLogger("resumes.pipeline").setLevel(logging.INFO)
logging.getLogger("resumes.ocr").setLevel(logging.INFO)

# Reduce noise from external libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("openai").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("pdfminer").setLevel(logging.WARNING)


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router.router)
    app.include_router(resumes_router.router)
    app.include_router(candidates_router.router)
    app.include_router(llm_router.router)

    return app


app = create_app()
