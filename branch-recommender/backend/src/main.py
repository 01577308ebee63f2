from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field, field_validator

from config import Configuration
from services.ai_provider import TextGenerator, build_generator
from services.branch_store import BranchRepository, DataSourceError, LocationNotFoundError
from services.criteria import KNOWN_CRITERIA, is_known_criterion
from services.recommender import BranchRecommender, RecommendationServiceError


load_dotenv()

GeneratorFactory = Callable[[Configuration], TextGenerator]


def get_config() -> Configuration:
    return Configuration.from_env()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Refuse to start with an unknown provider or a missing key.
    cfg = app.dependency_overrides.get(get_config, get_config)()
    try:
        cfg.require_ai()
    except ValueError as exc:
        logger.error("AI configuration error: {}", exc)
        raise
    logger.info("AI provider {} configured; {}", cfg.ai_provider, cfg.log_summary())
    yield


app = FastAPI(title="Branch Recommender", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_store(cfg: Configuration = Depends(get_config)) -> BranchRepository:
    return BranchRepository(cfg.branches_path)


def get_generator_factory() -> GeneratorFactory:
    return build_generator


def get_generator(
    cfg: Configuration = Depends(get_config),
    factory: GeneratorFactory = Depends(get_generator_factory),
) -> TextGenerator:
    try:
        return factory(cfg)
    except ValueError as exc:
        logger.error("AI provider unavailable: {}", exc)
        raise HTTPException(status_code=503, detail="AI provider is not configured.") from exc


def get_recommender(
    cfg: Configuration = Depends(get_config),
    store: BranchRepository = Depends(get_store),
    generator: TextGenerator = Depends(get_generator),
) -> BranchRecommender:
    return BranchRecommender(cfg, store, generator)


class RecommendRequest(BaseModel):
    region: str = Field(..., description="Target region the customer is moving to")
    current_location: str = Field(..., description="Name of the customer's current branch")
    priorities: List[str] = Field(default_factory=list, description="Preference criteria, most important first")

    @field_validator("region", "current_location")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("priorities", mode="before")
    @classmethod
    def _default_priorities(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("priorities")
    @classmethod
    def _known_and_unique(cls, value: List[str]) -> List[str]:
        cleaned = [v.strip() for v in value]
        unknown = [v for v in cleaned if not is_known_criterion(v)]
        if unknown:
            raise ValueError(f"unknown criteria {unknown}; valid criteria: {', '.join(KNOWN_CRITERIA)}")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("the same criterion cannot be selected more than once")
        return cleaned


class RecommendResponse(BaseModel):
    pick: str
    rationale: str
    nearest: Optional[str] = None
    degraded: bool = False


@app.get("/healthz")
def healthz(cfg: Configuration = Depends(get_config)) -> dict:
    logger.info("cfg: {}", cfg.log_summary())
    return {"status": "ok"}


@app.get("/health/llm")
def health_llm(
    cfg: Configuration = Depends(get_config),
    factory: GeneratorFactory = Depends(get_generator_factory),
) -> dict:
    provider = cfg.ai_provider
    detail = None
    try:
        cfg.require_ai()
        generator = factory(cfg)
        provider = generator.name
        ok = generator.test_connection()
    except ValueError as exc:
        ok = False
        detail = str(exc)
    return {"ok": ok, "provider": provider, "detail": detail}


@app.get("/api/criteria")
def list_criteria() -> Dict[str, List[str]]:
    return {"criteria": list(KNOWN_CRITERIA)}


@app.get("/api/branches")
def list_branches(store: BranchRepository = Depends(get_store)) -> Dict[str, List[Dict[str, Any]]]:
    try:
        branches = store.find_all()
    except DataSourceError as exc:
        raise HTTPException(status_code=500, detail="Branch data could not be read.") from exc
    return {"branches": [asdict(b) for b in branches]}


@app.post("/api/recommendations", response_model=RecommendResponse)
async def recommend(
    req: RecommendRequest,
    recommender: BranchRecommender = Depends(get_recommender),
) -> RecommendResponse:
    try:
        result = await recommender.recommend(req.region, req.current_location, req.priorities)
    except LocationNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Current branch not found.") from exc
    except DataSourceError as exc:
        logger.error("branch data unavailable: {}", exc)
        raise HTTPException(status_code=500, detail="Branch data could not be read.") from exc
    except RecommendationServiceError as exc:
        logger.error("recommendation failed: {}", exc)
        raise HTTPException(status_code=500, detail="A server-side error occurred.") from exc
    except Exception as exc:
        logger.exception("recommendation failed: {}", exc)
        raise HTTPException(status_code=500, detail="internal error") from exc

    return RecommendResponse(**asdict(result))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8010, reload=True)
