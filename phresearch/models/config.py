import os
from pydantic import BaseModel, Field
from typing import Dict, Optional
from enum import Enum


class LLMProvider(str, Enum):
    """Supported LLM providers"""
    OPENAI = "openai"
    GROQ = "groq"
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"
    OPENROUTER = "openrouter"


class IdentityStrategy(str, Enum):
    """How products returned by different keyword searches are matched up"""
    NAME = "name"                        # exact display name
    NORMALIZED_NAME = "normalized_name"  # case-folded, trimmed display name
    SOURCE_ID = "source_id"              # upstream id, name when the id is missing


class LLMConfig(BaseModel):
    """Keyword generation model configuration"""
    provider: LLMProvider = LLMProvider.OPENAI
    api_key: Optional[str] = None
    model_name: Optional[str] = "gpt-4o-mini"
    base_url: Optional[str] = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=500, ge=16)


class ProductHuntConfig(BaseModel):
    """Product directory (ProductHunt GraphQL) configuration"""
    developer_token: Optional[str] = None
    api_url: str = "https://api.producthunt.com/v2/api/graphql"
    timeout: float = Field(default=15.0, ge=1.0, le=120.0)


class DeepResearchConfig(BaseModel):
    """Deep research workflow and redirect resolution configuration"""
    api_key: Optional[str] = None
    workflow_id: Optional[str] = None
    workflow_url: str = "https://api.coze.cn/v1/workflow/run"
    resolve_timeout: float = Field(default=5.0, ge=1.0, le=60.0)
    max_redirects: int = Field(default=5, ge=0, le=20)
    workflow_timeout: float = Field(default=120.0, ge=5.0, le=600.0)
    concurrent_fetches: int = Field(default=3, ge=1, le=10)


class PipelineConfig(BaseModel):
    """Research pipeline parameters"""
    default_weight: int = Field(default=10, ge=1, le=50, description="Results requested per generated keyword")
    keyword_count: int = Field(default=10, ge=1, le=30, description="Keywords requested from the model")
    max_concurrent_searches: int = Field(default=4, ge=1, le=16, description="1 runs keyword searches sequentially")
    identity_strategy: IdentityStrategy = IdentityStrategy.NAME


class AppConfig(BaseModel):
    """Top-level application configuration"""
    llm: LLMConfig = Field(default_factory=LLMConfig)
    producthunt: ProductHuntConfig = Field(default_factory=ProductHuntConfig)
    deep_research: DeepResearchConfig = Field(default_factory=DeepResearchConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    db_path: str = "data/database/research_history.db"
    port: int = 3001


def load_config(env: Optional[Dict[str, str]] = None) -> AppConfig:
    """Build an AppConfig from environment variables (or an explicit mapping)."""
    env = os.environ if env is None else env

    llm = LLMConfig(
        provider=LLMProvider(env.get("LLM_PROVIDER", LLMProvider.OPENAI.value).lower()),
        api_key=env.get("LLM_API_KEY") or env.get("OPENAI_API_KEY"),
        model_name=env.get("LLM_MODEL", "gpt-4o-mini"),
        base_url=env.get("OPENAI_BASE_URL") or None,
    )

    producthunt = ProductHuntConfig(
        developer_token=env.get("PRODUCTHUNT_DEVELOPER_TOKEN") or None,
    )
    if env.get("PRODUCTHUNT_API_URL"):
        producthunt.api_url = env["PRODUCTHUNT_API_URL"]

    deep_research = DeepResearchConfig(
        api_key=env.get("COZE_API_KEY") or None,
        workflow_id=env.get("COZE_WORKFLOW_ID") or None,
    )

    pipeline = PipelineConfig(
        default_weight=int(env.get("RESEARCH_DEFAULT_WEIGHT", 10)),
        keyword_count=int(env.get("RESEARCH_KEYWORD_COUNT", 10)),
        max_concurrent_searches=int(env.get("RESEARCH_MAX_CONCURRENT_SEARCHES", 4)),
        identity_strategy=IdentityStrategy(env.get("RESEARCH_IDENTITY_STRATEGY", IdentityStrategy.NAME.value)),
    )

    return AppConfig(
        llm=llm,
        producthunt=producthunt,
        deep_research=deep_research,
        pipeline=pipeline,
        db_path=env.get("RESEARCH_DB_PATH", "data/database/research_history.db"),
        port=int(env.get("PORT", 3001)),
    )
