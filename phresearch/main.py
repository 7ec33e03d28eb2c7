"""FastAPI backend for product topic research"""
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional
from loguru import logger

from phresearch.core.errors import (
    EnrichmentFetchError, GenerationError, InvalidKeywordSetError,
    SiteUnavailableError, SourceError,
)
from phresearch.core.service import ResearchService
from phresearch.models.research import Product


app = FastAPI(title="Product Research API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

research_service: Optional[ResearchService] = None


@app.on_event("startup")
async def startup():
    global research_service
    if research_service is None:
        logger.info("Starting research service...")
        research_service = ResearchService()


def _get_service() -> ResearchService:
    if research_service is None:
        raise HTTPException(status_code=503, detail="Research service is not ready")
    return research_service


# Request models
class ResearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic: str = ""
    existing_research: Optional[Dict[str, str]] = Field(default=None, alias="existingResearch")
    existing_enrichment: Optional[Dict[str, str]] = Field(default=None, alias="existingEnrichment")
    adjusted_keywords: Optional[Dict[str, int]] = Field(default=None, alias="adjustedKeywords")
    skip_generation: bool = Field(default=False, alias="skipGeneration")
    refresh: bool = False


class DeepResearchRequest(BaseModel):
    url: str = ""
    website: Optional[str] = None  # enrichment key to cache the output under


class EnrichmentRequest(BaseModel):
    website: str = ""


class BatchEnrichmentRequest(BaseModel):
    websites: List[str] = []


class FavoriteRequest(BaseModel):
    product: Product


@app.get("/health")
async def health():
    return {"status": "healthy"}


@app.post("/api/research")
async def research(request: ResearchRequest):
    """Topic -> keywords -> products, with optional adjusted keyword re-run"""
    if not request.topic.strip():
        raise HTTPException(status_code=400, detail="Please provide a product topic")

    enrichment = None
    if request.existing_research or request.existing_enrichment:
        enrichment = {**(request.existing_enrichment or {}), **(request.existing_research or {})}

    service = _get_service()
    try:
        result = await service.research(
            request.topic,
            existing_enrichment=enrichment,
            adjusted_keywords=request.adjusted_keywords,
            skip_generation=request.skip_generation,
            refresh=request.refresh,
        )
        return result.to_payload()
    except InvalidKeywordSetError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except (GenerationError, SourceError) as e:
        logger.error(f"Research error: {e.message}")
        raise HTTPException(status_code=502, detail=e.message)
    except Exception as e:
        logger.error(f"Research error: {e}")
        raise HTTPException(status_code=500, detail=str(e) or "Internal server error")


@app.get("/api/get-actual-url")
async def get_actual_url(url: str = Query(default="")):
    """Resolve a product website to its final URL after redirects"""
    if not url:
        raise HTTPException(status_code=400, detail="Please provide a URL")

    try:
        return {"url": await _get_service().resolve_url(url)}
    except SiteUnavailableError as e:
        raise HTTPException(status_code=404, detail=e.message)


@app.post("/api/deep-research")
async def deep_research(request: DeepResearchRequest):
    """Run the deep research workflow on an already resolved URL"""
    if not request.url:
        raise HTTPException(status_code=400, detail="Please provide a URL")

    service = _get_service()
    try:
        output = await service.run_workflow(request.url)
    except EnrichmentFetchError as e:
        logger.error(f"Deep research failed: {e.message}")
        raise HTTPException(status_code=502, detail=e.message)

    if request.website:
        service.store.save_enrichment(request.website, output)
        service.store.update_favorite_research(request.website, output)
    return {"output": output}


@app.post("/api/enrichment")
async def fetch_enrichment(request: EnrichmentRequest):
    """Resolve a product website and run deep research on it"""
    if not request.website:
        raise HTTPException(status_code=400, detail="Please provide a website")

    try:
        return {"output": await _get_service().fetch_enrichment(request.website)}
    except SiteUnavailableError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except EnrichmentFetchError as e:
        logger.error(f"Enrichment failed for {request.website}: {e.message}")
        raise HTTPException(status_code=502, detail=e.message)


@app.post("/api/enrichment/batch")
async def fetch_enrichments(request: BatchEnrichmentRequest):
    """Enrich several websites; failures are reported per website"""
    websites = [w for w in request.websites if w and w.strip()]
    if not websites:
        raise HTTPException(status_code=400, detail="Please provide at least one website")

    return await _get_service().fetch_enrichments(websites)


# --- History Endpoints ---

@app.get("/api/history")
async def list_history():
    """List researched topics"""
    try:
        return _get_service().list_history()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list history: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/history/{topic}")
async def get_history(topic: str):
    """Get the stored result for a topic"""
    result = _get_service().get_history(topic)
    if result is None:
        raise HTTPException(status_code=404, detail="Topic not found in history")
    return result.to_payload()


@app.delete("/api/history/{topic}")
async def delete_history(topic: str):
    """Delete one topic from history"""
    if not _get_service().delete_history(topic):
        raise HTTPException(status_code=404, detail="Topic not found in history")
    return {"status": "success"}


@app.delete("/api/history")
async def clear_history():
    """Clear all history"""
    _get_service().clear_history()
    return {"status": "success"}


# --- Favorites Endpoints ---

@app.get("/api/favorites")
async def get_favorites():
    return _get_service().get_favorites()


@app.post("/api/favorites")
async def add_favorite(request: FavoriteRequest):
    try:
        return _get_service().add_favorite(request.product)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.delete("/api/favorites")
async def remove_favorite(key: str = Query(default="")):
    if not key:
        raise HTTPException(status_code=400, detail="Please provide a favorite key")
    if not _get_service().remove_favorite(key):
        raise HTTPException(status_code=404, detail="Favorite not found")
    return {"status": "success"}


@app.get("/api/statistics")
async def get_statistics():
    """Get usage statistics"""
    try:
        return _get_service().get_statistics()
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


if __name__ == "__main__":
    import uvicorn
    from phresearch.models.config import load_config
    uvicorn.run(app, host="0.0.0.0", port=load_config().port)
