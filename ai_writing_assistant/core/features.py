"""
Feature catalogue and result types.

Defines the AI writing features, their model budgets and the structured
results returned to callers.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List


class FeatureType(Enum):
    """AI writing capabilities exposed by the service."""
    TITLE_GENERATION = "title_generation"
    CONTENT_OPTIMIZATION = "content_optimization"
    STYLE_RECOMMENDATION = "style_recommendation"
    ARTICLE_ANALYSIS = "article_analysis"
    SEO_OPTIMIZATION = "seo_optimization"


@dataclass(frozen=True)
class ModelBudget:
    """Completion budget for a single feature call."""
    max_tokens: int
    temperature: float


MODEL_BUDGETS: Dict[FeatureType, ModelBudget] = {
    FeatureType.TITLE_GENERATION: ModelBudget(max_tokens=500, temperature=0.8),
    FeatureType.CONTENT_OPTIMIZATION: ModelBudget(max_tokens=2000, temperature=0.7),
    FeatureType.STYLE_RECOMMENDATION: ModelBudget(max_tokens=800, temperature=0.6),
    FeatureType.ARTICLE_ANALYSIS: ModelBudget(max_tokens=1000, temperature=0.5),
    FeatureType.SEO_OPTIMIZATION: ModelBudget(max_tokens=800, temperature=0.6),
}


class BatchTask(Enum):
    """Task kinds accepted by batch processing."""
    TITLE = "title"
    OPTIMIZE = "optimize"
    ANALYZE = "analyze"
    SEO = "seo"
    STYLE = "style"

    @property
    def feature(self) -> FeatureType:
        return BATCH_TASK_FEATURES[self]

    @property
    def result_key(self) -> str:
        return BATCH_RESULT_KEYS[self]

    @property
    def error_key(self) -> str:
        return f"{self.value}Error"


BATCH_TASK_FEATURES: Dict[BatchTask, FeatureType] = {
    BatchTask.TITLE: FeatureType.TITLE_GENERATION,
    BatchTask.OPTIMIZE: FeatureType.CONTENT_OPTIMIZATION,
    BatchTask.ANALYZE: FeatureType.ARTICLE_ANALYSIS,
    BatchTask.SEO: FeatureType.SEO_OPTIMIZATION,
    BatchTask.STYLE: FeatureType.STYLE_RECOMMENDATION,
}

BATCH_RESULT_KEYS: Dict[BatchTask, str] = {
    BatchTask.TITLE: "titles",
    BatchTask.OPTIMIZE: "optimizedContent",
    BatchTask.ANALYZE: "analysis",
    BatchTask.SEO: "seo",
    BatchTask.STYLE: "styleRecommendations",
}


READABILITY_LEVELS = ("easy", "medium", "hard")


@dataclass(frozen=True)
class StyleRecommendation:
    """Layout template suggested for an article."""
    template_id: str
    reason: str
    confidence: float

    def to_dict(self) -> Dict[str, object]:
        return {
            "templateId": self.template_id,
            "reason": self.reason,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class ArticleAnalysis:
    """Quality assessment of an article.

    Attributes:
        score: Overall quality score in [0, 10]
        suggestions: Ordered improvement suggestions
        keywords: Distinct keywords, first-seen order
        readability_level: One of READABILITY_LEVELS
    """
    score: float
    suggestions: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    readability_level: str = "medium"

    def to_dict(self) -> Dict[str, object]:
        return {
            "score": self.score,
            "suggestions": list(self.suggestions),
            "keywords": list(self.keywords),
            "readabilityLevel": self.readability_level,
        }


@dataclass(frozen=True)
class SEOSuggestion:
    """Search optimisation proposal for an article."""
    title: str
    description: str
    keywords: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)
