"""
Response parsing for model output.

Model output is untrusted free-form text. Every parser here is total: a
malformed or schema-mismatched response yields the feature's fallback value
instead of an exception.
"""

import json
import re
from typing import Any, List, Optional, Union

from .features import (
    READABILITY_LEVELS,
    ArticleAnalysis,
    FeatureType,
    SEOSuggestion,
    StyleRecommendation,
)


_CODE_FENCE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n(?P<body>.*?)\n?\s*```\s*$", re.DOTALL)


def fallback_style_recommendations() -> List[StyleRecommendation]:
    return [StyleRecommendation(template_id="minimalist", reason="fallback default", confidence=0.7)]


def fallback_article_analysis() -> ArticleAnalysis:
    return ArticleAnalysis(
        score=7.0,
        suggestions=["analysis unavailable"],
        keywords=[],
        readability_level="medium",
    )


def fallback_seo_suggestion() -> SEOSuggestion:
    return SEOSuggestion(
        title="set manually",
        description="set manually",
        keywords=[],
        suggestions=["seo analysis unavailable"],
    )


class _SchemaMismatch(Exception):
    pass


def _decode_json(raw_text: str) -> Any:
    text = (raw_text or "").strip()
    match = _CODE_FENCE.match(text)
    if match:
        text = match.group("body").strip()
    return json.loads(text)


def _number(value: Any, low: float, high: float) -> float:
    # bool is an int subclass and never a valid score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _SchemaMismatch(f"expected number, got {type(value).__name__}")
    try:
        number = float(value)
    except OverflowError:
        raise _SchemaMismatch("number out of float range") from None
    if not low <= number <= high:
        raise _SchemaMismatch(f"{number} outside [{low}, {high}]")
    return number


def _string(value: Any) -> str:
    if not isinstance(value, str):
        raise _SchemaMismatch(f"expected string, got {type(value).__name__}")
    return value.strip()


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        raise _SchemaMismatch(f"expected list, got {type(value).__name__}")
    return [_string(item) for item in value]


def _unique(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def parse_titles(raw_text: str) -> List[str]:
    """Split model output into one title per non-blank line."""
    return [line.strip() for line in (raw_text or "").splitlines() if line.strip()]


def parse_optimized_content(raw_text: str, original_content: str) -> str:
    """Return the optimized text, or the original when the model returned nothing."""
    if not raw_text or not raw_text.strip():
        return original_content
    return raw_text


def parse_style_recommendations(raw_text: str) -> List[StyleRecommendation]:
    try:
        payload = _decode_json(raw_text)
        if not isinstance(payload, list) or not payload:
            raise _SchemaMismatch("expected non-empty list")
        recommendations = []
        for item in payload:
            if not isinstance(item, dict):
                raise _SchemaMismatch("expected object")
            template_id = _string(item.get("templateId"))
            if not template_id:
                raise _SchemaMismatch("empty templateId")
            recommendations.append(StyleRecommendation(
                template_id=template_id,
                reason=_string(item.get("reason")),
                confidence=_number(item.get("confidence"), 0.0, 1.0),
            ))
        return recommendations
    except (ValueError, RecursionError, _SchemaMismatch):
        return fallback_style_recommendations()


def parse_article_analysis(raw_text: str) -> ArticleAnalysis:
    try:
        payload = _decode_json(raw_text)
        if not isinstance(payload, dict):
            raise _SchemaMismatch("expected object")
        level = _string(payload.get("readabilityLevel")).lower()
        if level not in READABILITY_LEVELS:
            raise _SchemaMismatch(f"unknown readability level {level!r}")
        return ArticleAnalysis(
            score=_number(payload.get("score"), 0.0, 10.0),
            suggestions=[s for s in _string_list(payload.get("suggestions")) if s],
            keywords=_unique(_string_list(payload.get("keywords"))),
            readability_level=level,
        )
    except (ValueError, RecursionError, _SchemaMismatch):
        return fallback_article_analysis()


def parse_seo_suggestion(raw_text: str) -> SEOSuggestion:
    try:
        payload = _decode_json(raw_text)
        if not isinstance(payload, dict):
            raise _SchemaMismatch("expected object")
        return SEOSuggestion(
            title=_string(payload.get("title")),
            description=_string(payload.get("description")),
            keywords=_unique(_string_list(payload.get("keywords"))),
            suggestions=[s for s in _string_list(payload.get("suggestions")) if s],
        )
    except (ValueError, RecursionError, _SchemaMismatch):
        return fallback_seo_suggestion()


ParsedResult = Union[List[str], str, List[StyleRecommendation], ArticleAnalysis, SEOSuggestion]


def parse_response(feature: FeatureType, raw_text: Optional[str], original_content: str = "") -> ParsedResult:
    """Convert raw model text into the feature's structured result.

    Never raises for any raw text; see the individual parsers for the
    fallback values.
    """
    raw_text = raw_text or ""
    if feature is FeatureType.TITLE_GENERATION:
        return parse_titles(raw_text)
    if feature is FeatureType.CONTENT_OPTIMIZATION:
        return parse_optimized_content(raw_text, original_content)
    if feature is FeatureType.STYLE_RECOMMENDATION:
        return parse_style_recommendations(raw_text)
    if feature is FeatureType.ARTICLE_ANALYSIS:
        return parse_article_analysis(raw_text)
    return parse_seo_suggestion(raw_text)
