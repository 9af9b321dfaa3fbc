"""
Unit tests for response parsing.

The parser must never raise: every malformed input maps to the feature's
fallback value.
"""

import json

import pytest

from ai_writing_assistant.core.features import (
    ArticleAnalysis,
    FeatureType,
    SEOSuggestion,
    StyleRecommendation,
)
from ai_writing_assistant.core.parser import (
    fallback_article_analysis,
    fallback_seo_suggestion,
    fallback_style_recommendations,
    parse_response,
)


MALFORMED_INPUTS = [
    "",
    "   \n  ",
    "这不是JSON",
    '{"score": 8.5, "suggestions": [',
    "[1, 2, 3]",
    '{"unexpected": true}',
    "null",
    "42",
    "[" * 5000,
    '{"score": 1' + "0" * 400 + ', "suggestions": [], "keywords": [], "readabilityLevel": "easy"}',
    '[{"templateId": "tech", "reason": "r", "confidence": 1' + "0" * 400 + '}]',
]


class TestTitleParsing:

    def test_splits_and_trims_lines(self):
        raw = "  标题一  \n\n标题二\r\n   \n\t标题三\t"
        assert parse_response(FeatureType.TITLE_GENERATION, raw) == ["标题一", "标题二", "标题三"]

    def test_empty_input(self):
        assert parse_response(FeatureType.TITLE_GENERATION, "") == []
        assert parse_response(FeatureType.TITLE_GENERATION, None) == []


class TestContentParsing:

    def test_passthrough(self):
        assert parse_response(FeatureType.CONTENT_OPTIMIZATION, "优化后", "原文") == "优化后"

    def test_empty_returns_original(self):
        assert parse_response(FeatureType.CONTENT_OPTIMIZATION, "", "原文") == "原文"
        assert parse_response(FeatureType.CONTENT_OPTIMIZATION, "  \n", "原文") == "原文"


class TestStyleParsing:

    def test_valid_list(self):
        raw = json.dumps([
            {"templateId": "tech", "reason": "科技主题", "confidence": 0.9},
            {"templateId": "business", "reason": "商务场景", "confidence": 1},
        ], ensure_ascii=False)
        result = parse_response(FeatureType.STYLE_RECOMMENDATION, raw)
        assert result == [
            StyleRecommendation("tech", "科技主题", 0.9),
            StyleRecommendation("business", "商务场景", 1.0),
        ]

    def test_code_fenced_json(self):
        raw = '```json\n[{"templateId": "tech", "reason": "r", "confidence": 0.8}]\n```'
        result = parse_response(FeatureType.STYLE_RECOMMENDATION, raw)
        assert result[0].template_id == "tech"

    @pytest.mark.parametrize("raw", MALFORMED_INPUTS + [
        "[]",
        '[{"templateId": "tech", "reason": "r", "confidence": 1.5}]',
        '[{"templateId": "tech", "reason": "r", "confidence": "high"}]',
        '[{"templateId": "", "reason": "r", "confidence": 0.5}]',
        '[{"templateId": "tech", "confidence": 0.5}]',
    ])
    def test_fallback(self, raw):
        result = parse_response(FeatureType.STYLE_RECOMMENDATION, raw)
        assert result == [StyleRecommendation("minimalist", "fallback default", 0.7)]
        assert result == fallback_style_recommendations()


class TestAnalysisParsing:

    def test_valid_object(self):
        raw = json.dumps({
            "score": 8.5,
            "suggestions": ["增加小标题", "精简开头"],
            "keywords": ["AI", "写作", "AI"],
            "readabilityLevel": "Easy",
        }, ensure_ascii=False)
        result = parse_response(FeatureType.ARTICLE_ANALYSIS, raw)
        assert result == ArticleAnalysis(8.5, ["增加小标题", "精简开头"], ["AI", "写作"], "easy")

    @pytest.mark.parametrize("raw", MALFORMED_INPUTS + [
        '{"score": 11, "suggestions": [], "keywords": [], "readabilityLevel": "easy"}',
        '{"score": true, "suggestions": [], "keywords": [], "readabilityLevel": "easy"}',
        '{"score": 8, "suggestions": "多写", "keywords": [], "readabilityLevel": "easy"}',
        '{"score": 8, "suggestions": [], "keywords": [], "readabilityLevel": "expert"}',
        '{"score": 8, "suggestions": [1], "keywords": [], "readabilityLevel": "easy"}',
    ])
    def test_fallback(self, raw):
        result = parse_response(FeatureType.ARTICLE_ANALYSIS, raw)
        assert result == fallback_article_analysis()
        assert result.to_dict() == {
            "score": 7.0,
            "suggestions": ["analysis unavailable"],
            "keywords": [],
            "readabilityLevel": "medium",
        }


class TestSEOParsing:

    def test_valid_object(self):
        raw = json.dumps({
            "title": "AI如何改变写作",
            "description": "介绍AI写作工具",
            "keywords": ["AI", "写作"],
            "suggestions": ["在首段加入关键词"],
        }, ensure_ascii=False)
        result = parse_response(FeatureType.SEO_OPTIMIZATION, raw)
        assert result == SEOSuggestion("AI如何改变写作", "介绍AI写作工具", ["AI", "写作"], ["在首段加入关键词"])

    @pytest.mark.parametrize("raw", MALFORMED_INPUTS + [
        '{"title": "t", "description": "d", "keywords": "AI", "suggestions": []}',
        '{"title": 1, "description": "d", "keywords": [], "suggestions": []}',
    ])
    def test_fallback(self, raw):
        result = parse_response(FeatureType.SEO_OPTIMIZATION, raw)
        assert result == fallback_seo_suggestion()
        assert result.to_dict() == {
            "title": "set manually",
            "description": "set manually",
            "keywords": [],
            "suggestions": ["seo analysis unavailable"],
        }


class TestTotality:

    @pytest.mark.parametrize("feature", list(FeatureType))
    @pytest.mark.parametrize("raw", MALFORMED_INPUTS)
    def test_never_raises(self, feature, raw):
        parse_response(feature, raw, "原文")
