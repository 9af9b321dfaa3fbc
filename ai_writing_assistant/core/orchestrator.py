"""
Request orchestration for AI writing features.

Each feature call runs the same pipeline:
1. Authenticated - caller identity present
2. QuotaChecked - daily cap for (user, feature) not reached
3. PromptBuilt - options resolved into a prompt
4. ModelInvoked - one completion call
5. ResponseParsed - raw text turned into a typed result (never fails)
6. UsageRecorded - best-effort ledger append

Any failure before step 4 ends the request without a model call or a
usage record.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from .errors import (
    AssistantError,
    ForbiddenTier,
    InvalidInput,
    ModelError,
    ProcessingFailed,
    QuotaExceeded,
    Unauthenticated,
)
from .features import (
    MODEL_BUDGETS,
    ArticleAnalysis,
    BatchTask,
    FeatureType,
    SEOSuggestion,
    StyleRecommendation,
)
from .log import get_logger
from .parser import parse_response
from .prompts import build_prompt, clamp_title_count
from .quota import QuotaPolicy
from ..sdk.openai_client import ModelInvocation, ModelInvoker
from ..storage.models import UsageStats
from ..storage.repository import PERIODS, UsageLedger


logger = get_logger(__name__)

MAX_CONTENT_LENGTH = 10000
BATCH_ERROR_MESSAGE = "processing failed"

# Features whose full text goes into the prompt
_UNTRUNCATED_FEATURES = (FeatureType.CONTENT_OPTIMIZATION, FeatureType.ARTICLE_ANALYSIS)

FAILURE_MESSAGES: Dict[FeatureType, str] = {
    FeatureType.TITLE_GENERATION: "Title generation failed, please try again later",
    FeatureType.CONTENT_OPTIMIZATION: "Content optimization failed, please try again later",
    FeatureType.STYLE_RECOMMENDATION: "Style recommendation failed, please try again later",
    FeatureType.ARTICLE_ANALYSIS: "Article analysis failed, please try again later",
    FeatureType.SEO_OPTIMIZATION: "SEO suggestion generation failed, please try again later",
}


@dataclass(frozen=True)
class UserIdentity:
    """Caller identity resolved from the bearer token."""
    id: str
    email: str = ""
    subscription_type: str = "free"


def to_payload(result):
    """Convert a feature result into JSON-ready data."""
    if isinstance(result, list):
        return [to_payload(item) for item in result]
    if isinstance(result, (StyleRecommendation, ArticleAnalysis, SEOSuggestion, UsageStats)):
        return result.to_dict()
    return result


class RequestOrchestrator:
    """Runs quota-gated AI feature requests.

    Args:
        invoker: Language model invoker
        ledger: Usage ledger (reads for quota, writes for telemetry)
        quota_policy: Tier quota decisions
    """

    def __init__(self, invoker: ModelInvoker, ledger: UsageLedger, quota_policy: QuotaPolicy):
        self.invoker = invoker
        self.ledger = ledger
        self.quota_policy = quota_policy
        self._batch_runners: Dict[BatchTask, Callable[[UserIdentity, str], Awaitable]] = {
            BatchTask.TITLE: self.generate_titles,
            BatchTask.OPTIMIZE: self.optimize_content,
            BatchTask.ANALYZE: self.analyze_article,
            BatchTask.SEO: self.seo_suggestions,
            BatchTask.STYLE: self.recommend_style,
        }

    @staticmethod
    def _require_user(user: Optional[UserIdentity]) -> UserIdentity:
        if user is None or not str(user.id or "").strip():
            raise Unauthenticated()
        return user

    @staticmethod
    def _require_content(content: str) -> None:
        if not isinstance(content, str) or not content.strip():
            raise InvalidInput(
                "Invalid request parameters",
                errors=[{"field": "content", "message": "content is required"}],
            )

    @classmethod
    def _validate_content(cls, feature: FeatureType, content: str) -> None:
        cls._require_content(content)
        if feature in _UNTRUNCATED_FEATURES and len(content) > MAX_CONTENT_LENGTH:
            raise InvalidInput(
                f"Content cannot exceed {MAX_CONTENT_LENGTH} characters",
                errors=[{
                    "field": "content",
                    "message": f"length {len(content)} exceeds {MAX_CONTENT_LENGTH}",
                }],
            )

    async def _check_quota(self, user: UserIdentity, feature: FeatureType) -> None:
        allowed = await asyncio.to_thread(
            self.quota_policy.check_limit, user.id, feature, user.subscription_type
        )
        if not allowed:
            logger.info(
                "event=quota.exceeded | user_id=%s | tier=%s | feature=%s",
                user.id, user.subscription_type, feature.value,
            )
            raise QuotaExceeded()

    async def _record(self, user: UserIdentity, feature: FeatureType,
                      invocation: ModelInvocation, succeeded: bool) -> None:
        await asyncio.to_thread(
            self.ledger.record,
            user.id,
            feature,
            invocation.model,
            invocation.input_tokens,
            invocation.output_tokens,
            invocation.elapsed_ms,
            succeeded,
            invocation.request_id,
        )

    async def _run(self, user: Optional[UserIdentity], feature: FeatureType, content: str, **options):
        user = self._require_user(user)
        self._validate_content(feature, content)
        await self._check_quota(user, feature)

        prompt = build_prompt(feature, content, **options)
        budget = MODEL_BUDGETS[feature]

        try:
            invocation = await self.invoker.invoke(
                prompt.system_role,
                prompt.user_prompt,
                budget.max_tokens,
                budget.temperature,
            )
        except ModelError as e:
            logger.error(
                "event=model.failed | user_id=%s | feature=%s | error_type=%s | error=%s",
                user.id, feature.value, type(e).__name__, e,
            )
            raise ProcessingFailed(FAILURE_MESSAGES[feature]) from e

        try:
            result = parse_response(feature, invocation.raw_text, content)
            if feature is FeatureType.TITLE_GENERATION:
                result = result[:clamp_title_count(options.get("count"))]
        except Exception as e:
            logger.exception(
                "event=response.failed | user_id=%s | feature=%s", user.id, feature.value
            )
            await self._record(user, feature, invocation, succeeded=False)
            raise ProcessingFailed(FAILURE_MESSAGES[feature]) from e

        await self._record(user, feature, invocation, succeeded=True)
        return result

    async def generate_titles(self, user: Optional[UserIdentity], content: str,
                              style: Optional[str] = None, count: Optional[int] = None) -> List[str]:
        titles = await self._run(user, FeatureType.TITLE_GENERATION, content, style=style, count=count)
        logger.info("event=titles.generated | user_id=%s | count=%s", user.id, len(titles))
        return titles

    async def optimize_content(self, user: Optional[UserIdentity], content: str,
                               target_audience: Optional[str] = None, tone: Optional[str] = None,
                               optimization: Optional[str] = None) -> str:
        optimized = await self._run(
            user,
            FeatureType.CONTENT_OPTIMIZATION,
            content,
            target_audience=target_audience,
            tone=tone,
            optimization=optimization,
        )
        logger.info(
            "event=content.optimized | user_id=%s | original_length=%s | optimized_length=%s",
            user.id, len(content), len(optimized),
        )
        return optimized

    async def recommend_style(self, user: Optional[UserIdentity], content: str) -> List[StyleRecommendation]:
        recommendations = await self._run(user, FeatureType.STYLE_RECOMMENDATION, content)
        logger.info(
            "event=style.recommended | user_id=%s | count=%s", user.id, len(recommendations)
        )
        return recommendations

    async def analyze_article(self, user: Optional[UserIdentity], content: str) -> ArticleAnalysis:
        analysis = await self._run(user, FeatureType.ARTICLE_ANALYSIS, content)
        logger.info("event=article.analyzed | user_id=%s | score=%s", user.id, analysis.score)
        return analysis

    async def seo_suggestions(self, user: Optional[UserIdentity], content: str,
                              target_keywords: Optional[Sequence[str]] = None) -> SEOSuggestion:
        seo = await self._run(
            user, FeatureType.SEO_OPTIMIZATION, content, target_keywords=target_keywords
        )
        logger.info("event=seo.generated | user_id=%s | keywords=%s", user.id, len(seo.keywords))
        return seo

    async def usage_stats(self, user: Optional[UserIdentity], period: str = "day") -> UsageStats:
        user = self._require_user(user)
        if period not in PERIODS:
            raise InvalidInput(
                "Invalid request parameters",
                errors=[{"field": "period", "message": f"must be one of: {', '.join(PERIODS)}"}],
            )
        return await asyncio.to_thread(self.ledger.get_stats, user.id, period)

    def usage_limits(self, user: Optional[UserIdentity]) -> Tuple[str, Dict[str, Dict]]:
        """Tier name and its quota description for the caller."""
        user = self._require_user(user)
        tier = self.quota_policy.table.normalize_tier(user.subscription_type)
        return tier, self.quota_policy.describe(tier)

    @staticmethod
    def _parse_tasks(tasks: Sequence[str]) -> List[BatchTask]:
        if not tasks:
            raise InvalidInput(
                "Invalid request parameters",
                errors=[{"field": "tasks", "message": "at least one task is required"}],
            )
        allowed = [t.value for t in BatchTask]
        parsed: List[BatchTask] = []
        for name in tasks:
            try:
                task = BatchTask(str(name).strip().lower())
            except ValueError:
                raise InvalidInput(
                    "Invalid request parameters",
                    errors=[{
                        "field": "tasks",
                        "message": f"unknown task {name!r}, expected one of: {', '.join(allowed)}",
                    }],
                ) from None
            if task not in parsed:
                parsed.append(task)
        return parsed

    async def batch_process(self, user: Optional[UserIdentity], content: str,
                            tasks: Sequence[str]) -> Dict[str, object]:
        """Run several features concurrently on the same content.

        Every task runs its own pipeline; a failed task is reported under
        "<task>Error" and never cancels the others.

        Raises:
            Unauthenticated: If no caller identity is present
            ForbiddenTier: If the caller's tier lacks batch processing
            InvalidInput: If the content is blank or the task list is empty or
                names unknown tasks
        """
        user = self._require_user(user)
        if not self.quota_policy.has_capability(user.subscription_type, "batchProcess"):
            raise ForbiddenTier("Batch processing is available to paid plans only")
        parsed = self._parse_tasks(tasks)
        self._require_content(content)

        outcomes = await asyncio.gather(
            *(self._batch_runners[task](user, content) for task in parsed),
            return_exceptions=True,
        )

        results: Dict[str, object] = {}
        for task, outcome in zip(parsed, outcomes):
            if isinstance(outcome, AssistantError):
                logger.warning(
                    "event=batch.task_failed | user_id=%s | task=%s | error=%s",
                    user.id, task.value, outcome.message,
                )
                results[task.error_key] = outcome.message
            elif isinstance(outcome, BaseException):
                logger.error(
                    "event=batch.task_failed | user_id=%s | task=%s | error_type=%s | error=%s",
                    user.id, task.value, type(outcome).__name__, outcome,
                )
                results[task.error_key] = BATCH_ERROR_MESSAGE
            else:
                results[task.result_key] = to_payload(outcome)

        logger.info(
            "event=batch.completed | user_id=%s | tasks=%s | succeeded=%s",
            user.id, [t.value for t in parsed],
            sum(1 for o in outcomes if not isinstance(o, BaseException)),
        )
        return results
