"""
End-to-end tests for the HTTP API.

Drives every endpoint through FastAPI's TestClient with a scripted model.
"""

import os
import tempfile

from fastapi.testclient import TestClient

from ai_writing_assistant.api.app import create_app
from ai_writing_assistant.api.auth import StaticTokenResolver
from ai_writing_assistant.config.loader import AppConfig, StorageConfig
from ai_writing_assistant.core.errors import ModelUnavailable
from ai_writing_assistant.core.features import FeatureType
from ai_writing_assistant.core.orchestrator import RequestOrchestrator, UserIdentity
from ai_writing_assistant.core.prompts import SYSTEM_ROLES
from ai_writing_assistant.core.quota import DEFAULT_QUOTA_TABLE, QuotaPolicy
from ai_writing_assistant.sdk.openai_client import ModelInvocation
from ai_writing_assistant.storage.repository import UsageLedger


CONTENT = "公众号运营需要持续输出高质量内容。" * 10

TOKENS = {
    "free-token": UserIdentity(id="u-free", email="free@example.com", subscription_type="free"),
    "pro-token": UserIdentity(id="u-pro", email="pro@example.com", subscription_type="pro"),
}

RESPONSES = {
    FeatureType.TITLE_GENERATION: "标题一\n标题二\n标题三\n标题四\n标题五\n标题六",
    FeatureType.CONTENT_OPTIMIZATION: "优化后的内容",
    FeatureType.STYLE_RECOMMENDATION: '[{"templateId": "business", "reason": "商务内容", "confidence": 0.8}]',
    FeatureType.ARTICLE_ANALYSIS: '{"score": 7.5, "suggestions": ["补充案例"], "keywords": ["运营"], "readabilityLevel": "medium"}',
    FeatureType.SEO_OPTIMIZATION: '{"title": "运营指南", "description": "公众号运营", "keywords": ["运营"], "suggestions": ["优化摘要"]}',
}

_FEATURE_BY_ROLE = {role: feature for feature, role in SYSTEM_ROLES.items()}


class ScriptedInvoker:

    def __init__(self, failures=None):
        self.failures = failures or {}
        self.calls = 0

    async def invoke(self, system_role, user_prompt, max_tokens, temperature):
        feature = _FEATURE_BY_ROLE[system_role]
        self.calls += 1
        if feature in self.failures:
            raise self.failures[feature]
        return ModelInvocation(
            raw_text=RESPONSES[feature],
            input_tokens=200,
            output_tokens=100,
            elapsed_ms=20,
            model="gpt-3.5-turbo",
            request_id="chatcmpl-test",
        )


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


class TestAPI:

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.config = AppConfig(storage=StorageConfig(db_path=os.path.join(self.temp_dir, "usage.db")))
        self.client = self._client(ScriptedInvoker())

    def teardown_method(self):
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _client(self, invoker):
        self.invoker = invoker
        ledger = UsageLedger(db_path=self.config.storage.db_path)
        ledger.initialize()
        orchestrator = RequestOrchestrator(
            invoker=invoker,
            ledger=ledger,
            quota_policy=QuotaPolicy(DEFAULT_QUOTA_TABLE, ledger.count_today),
        )
        app = create_app(
            config=self.config,
            orchestrator=orchestrator,
            identity_resolver=StaticTokenResolver(TOKENS),
        )
        return TestClient(app)

    def test_generate_title(self):
        response = self.client.post(
            "/api/ai/generate-title",
            json={"content": CONTENT, "count": 3},
            headers=_auth("free-token"),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["titles"] == ["标题一", "标题二", "标题三"]
        assert body["data"]["style"] == "professional"
        assert body["data"]["generatedAt"].endswith("Z")
        assert "标题一" in response.text

    def test_missing_token(self):
        response = self.client.post("/api/ai/generate-title", json={"content": CONTENT})

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "User is not authenticated"}
        assert self.invoker.calls == 0

    def test_unknown_token(self):
        response = self.client.post(
            "/api/ai/generate-title", json={"content": CONTENT}, headers=_auth("stolen"),
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    def test_empty_content(self):
        response = self.client.post(
            "/api/ai/analyze-article", json={"content": ""}, headers=_auth("free-token"),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Invalid request parameters"
        assert body["errors"][0]["field"] == "content"

    def test_invalid_count(self):
        response = self.client.post(
            "/api/ai/generate-title", json={"content": CONTENT, "count": 0}, headers=_auth("free-token"),
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "count"

    def test_unknown_style(self):
        response = self.client.post(
            "/api/ai/generate-title", json={"content": CONTENT, "style": "poetic"}, headers=_auth("free-token"),
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "style"
        assert self.invoker.calls == 0

    def test_optimize_content(self):
        response = self.client.post(
            "/api/ai/optimize-content",
            json={"content": CONTENT, "targetAudience": "新手运营", "tone": "formal"},
            headers=_auth("free-token"),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["originalContent"] == CONTENT
        assert data["optimizedContent"] == "优化后的内容"
        assert data["optimization"] == "readability"
        assert "optimizedAt" in data

    def test_optimize_content_too_long(self):
        response = self.client.post(
            "/api/ai/optimize-content", json={"content": "字" * 10001}, headers=_auth("free-token"),
        )
        assert response.status_code == 400
        assert self.invoker.calls == 0

    def test_recommend_style(self):
        response = self.client.post(
            "/api/ai/recommend-style", json={"content": CONTENT}, headers=_auth("free-token"),
        )
        data = response.json()["data"]
        assert data["recommendations"] == [{"templateId": "business", "reason": "商务内容", "confidence": 0.8}]
        assert "recommendedAt" in data

    def test_analyze_article(self):
        response = self.client.post(
            "/api/ai/analyze-article", json={"content": CONTENT}, headers=_auth("free-token"),
        )
        data = response.json()["data"]
        assert data["score"] == 7.5
        assert data["suggestions"] == ["补充案例"]
        assert data["keywords"] == ["运营"]
        assert data["readabilityLevel"] == "medium"
        assert "analyzedAt" in data

    def test_seo_suggestions(self):
        response = self.client.post(
            "/api/ai/seo-suggestions",
            json={"content": CONTENT, "targetKeywords": ["运营"]},
            headers=_auth("free-token"),
        )
        data = response.json()["data"]
        assert data["title"] == "运营指南"
        assert data["description"] == "公众号运营"
        assert data["keywords"] == ["运营"]
        assert data["suggestions"] == ["优化摘要"]
        assert "generatedAt" in data

    def test_quota_exceeded(self):
        for _ in range(2):
            ok = self.client.post("/api/ai/analyze-article", json={"content": CONTENT}, headers=_auth("free-token"))
            assert ok.status_code == 200

        response = self.client.post("/api/ai/analyze-article", json={"content": CONTENT}, headers=_auth("free-token"))

        assert response.status_code == 429
        assert response.json()["success"] is False
        assert self.invoker.calls == 2

    def test_model_failure(self):
        client = self._client(ScriptedInvoker({FeatureType.SEO_OPTIMIZATION: ModelUnavailable("502")}))
        response = client.post("/api/ai/seo-suggestions", json={"content": CONTENT}, headers=_auth("free-token"))

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "message": "SEO suggestion generation failed, please try again later",
        }

    def test_batch_forbidden_for_free(self):
        response = self.client.post(
            "/api/ai/batch-process",
            json={"content": CONTENT, "tasks": ["title"]},
            headers=_auth("free-token"),
        )
        assert response.status_code == 403
        assert self.invoker.calls == 0

    def test_batch_partial_failure(self):
        client = self._client(ScriptedInvoker({FeatureType.ARTICLE_ANALYSIS: ModelUnavailable("502")}))
        response = client.post(
            "/api/ai/batch-process",
            json={"content": CONTENT, "tasks": ["title", "optimize", "analyze", "seo", "style"]},
            headers=_auth("pro-token"),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        results = data["results"]
        assert len(results["titles"]) == 5
        assert results["optimizedContent"] == "优化后的内容"
        assert results["analyzeError"] == "Article analysis failed, please try again later"
        assert results["seo"]["title"] == "运营指南"
        assert results["styleRecommendations"][0]["templateId"] == "business"
        assert "processedAt" in data

    def test_batch_empty_tasks(self):
        response = self.client.post(
            "/api/ai/batch-process", json={"content": CONTENT}, headers=_auth("pro-token"),
        )
        assert response.status_code == 400

    def test_batch_blank_content(self):
        response = self.client.post(
            "/api/ai/batch-process",
            json={"content": "   ", "tasks": ["title", "analyze"]},
            headers=_auth("pro-token"),
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "content"
        assert self.invoker.calls == 0

    def test_usage_stats(self):
        self.client.post("/api/ai/generate-title", json={"content": CONTENT}, headers=_auth("free-token"))
        self.client.post("/api/ai/analyze-article", json={"content": CONTENT}, headers=_auth("free-token"))

        response = self.client.get("/api/ai/usage-stats?period=week", headers=_auth("free-token"))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["totalRequests"] == 2
        assert data["totalTokens"] == 600
        assert data["features"] == {"title_generation": 1, "article_analysis": 1}
        assert data["costUSD"] > 0
        assert data["period"] == "week"
        assert "queriedAt" in data

    def test_usage_stats_default_period_empty(self):
        response = self.client.get("/api/ai/usage-stats", headers=_auth("pro-token"))
        data = response.json()["data"]
        assert data["period"] == "day"
        assert data["totalRequests"] == 0
        assert data["features"] == {}

    def test_usage_stats_invalid_period(self):
        response = self.client.get("/api/ai/usage-stats?period=year", headers=_auth("free-token"))
        assert response.status_code == 400

    def test_usage_limits(self):
        response = self.client.get("/api/ai/usage-limits", headers=_auth("pro-token"))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["subscriptionType"] == "pro"
        assert data["limits"]["dailyLimits"]["content_optimization"] == 50
        assert data["limits"]["features"] == {
            "batchProcess": True,
            "advancedAnalysis": True,
            "prioritySupport": False,
        }

    def test_request_id_echoed(self):
        response = self.client.get(
            "/api/ai/usage-limits", headers={**_auth("free-token"), "X-Request-Id": "trace-123"},
        )
        assert response.headers["X-Request-Id"] == "trace-123"
