# LLM connectivity probe and raw completion endpoint for manual testing and debugging
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from resume_processor.api.deps import get_extractor
from resume_processor.core.config import settings
from resume_processor.services.common.llm_client import LLMError
from resume_processor.services.resumes.extraction_pipeline import ResumeExtractor

router = APIRouter(prefix="/llm", tags=["llm"])
logger = logging.getLogger("api.llm")


class LLMTestRequest(BaseModel):
    prompt: str = Field(min_length=1, max_length=10000)
    temperature: float = Field(default=settings.LLM_TEMPERATURE, ge=0.0, le=2.0)
    max_tokens: int = Field(default=512, ge=1, le=8192)


class LLMTestResponse(BaseModel):
    prompt: str
    response: str
    model: str
    provider: str


@router.get("/health")
def llm_health(extractor: ResumeExtractor = Depends(get_extractor)):
    return extractor.test_connection()


@router.post("/test", response_model=LLMTestResponse)
def test_llm(request: LLMTestRequest, extractor: ResumeExtractor = Depends(get_extractor)):
    """Send a prompt as-is and return the raw completion."""
    logger.info("LLM test prompt: %d chars", len(request.prompt))
    try:
        client = extractor.client
        completion = client.complete(
            request.prompt,
            temperature=request.temperature,
            max_tokens=request.max_tokens,
            timeout=settings.LLM_TIMEOUT_S,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LLMError as e:
        logger.warning("LLM test failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e))
    return LLMTestResponse(
        prompt=request.prompt, response=completion.text, model=completion.model, provider=client.provider
    )
