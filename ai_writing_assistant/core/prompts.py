"""
Prompt construction for each writing feature.

Pure functions: the same feature, content and options always produce the
same prompt text.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from .errors import InvalidOption
from .features import FeatureType


TITLE_CONTENT_LIMIT = 2000
SEO_CONTENT_LIMIT = 2000
STYLE_CONTENT_LIMIT = 1500

DEFAULT_TITLE_STYLE = "professional"
DEFAULT_TITLE_COUNT = 5
MAX_TITLE_COUNT = 10
DEFAULT_TONE = "casual"
DEFAULT_OPTIMIZATION = "readability"
DEFAULT_AUDIENCE = "普通读者"

STYLE_DESCRIPTORS: Dict[str, str] = {
    "creative": "创意新颖、富有想象力",
    "professional": "专业严谨、简洁明了",
    "clickbait": "抓人眼球、引发好奇",
    "seo": "包含核心关键词、利于搜索",
}

TONE_DESCRIPTORS: Dict[str, str] = {
    "formal": "正式专业的书面语气",
    "casual": "轻松自然的对话语气",
    "humorous": "幽默风趣的表达方式",
    "inspiring": "积极向上的激励语气",
}

OPTIMIZATION_DESCRIPTORS: Dict[str, str] = {
    "readability": "提升可读性，理顺句式结构",
    "engagement": "增强互动感，提高读者参与度",
    "seo": "优化关键词分布，提升搜索排名",
}

LAYOUT_TEMPLATES: Dict[str, str] = {
    "business": "商务专业风格",
    "creative": "创意时尚风格",
    "minimalist": "极简清新风格",
    "tech": "科技现代风格",
    "lifestyle": "生活休闲风格",
}

SYSTEM_ROLES: Dict[FeatureType, str] = {
    FeatureType.TITLE_GENERATION: "你是一名资深公众号编辑，擅长为文章拟定吸引人的标题。",
    FeatureType.CONTENT_OPTIMIZATION: "你是一名专业的内容编辑，擅长提升文章的可读性与感染力。",
    FeatureType.STYLE_RECOMMENDATION: "你是一名视觉设计师，擅长根据内容特点推荐合适的排版样式。",
    FeatureType.ARTICLE_ANALYSIS: "你是一名内容分析师，擅长评估文章质量并给出改进建议。",
    FeatureType.SEO_OPTIMIZATION: "你是一名SEO专家，擅长优化内容以提升搜索引擎排名。",
}


@dataclass(frozen=True)
class PromptSpec:
    """Model-ready instruction pair."""
    system_role: str
    user_prompt: str


def _resolve(table: Dict[str, str], field_name: str, value: str) -> str:
    if value not in table:
        raise InvalidOption(field_name, value, sorted(table))
    return table[value]


def clamp_title_count(count: Optional[int]) -> int:
    """Bound the requested number of titles to [1, MAX_TITLE_COUNT]."""
    if count is None:
        return DEFAULT_TITLE_COUNT
    return max(1, min(int(count), MAX_TITLE_COUNT))


def build_title_prompt(content: str, style: str = DEFAULT_TITLE_STYLE,
                       count: int = DEFAULT_TITLE_COUNT) -> PromptSpec:
    descriptor = _resolve(STYLE_DESCRIPTORS, "style", style)
    count = clamp_title_count(count)
    prompt = (
        f"请根据下面的文章内容，拟定{count}个{descriptor}的标题。\n\n"
        f"文章内容：\n{content[:TITLE_CONTENT_LIMIT]}\n\n"
        "要求：\n"
        "1. 每个标题10到30个字\n"
        f"2. 风格：{descriptor}\n"
        "3. 贴合公众号文章的阅读场景\n"
        "4. 每行只写一个标题\n"
        "5. 不要添加序号、引号或其他标记\n\n"
        "请直接输出标题："
    )
    return PromptSpec(SYSTEM_ROLES[FeatureType.TITLE_GENERATION], prompt)


def build_optimization_prompt(content: str, target_audience: Optional[str] = None,
                              tone: str = DEFAULT_TONE,
                              optimization: str = DEFAULT_OPTIMIZATION) -> PromptSpec:
    tone_text = _resolve(TONE_DESCRIPTORS, "tone", tone)
    focus_text = _resolve(OPTIMIZATION_DESCRIPTORS, "optimization", optimization)
    audience = (target_audience or "").strip() or DEFAULT_AUDIENCE
    prompt = (
        "请优化下面的文章内容。\n\n"
        f"原文：\n{content}\n\n"
        "优化要求：\n"
        f"1. 目标读者：{audience}\n"
        f"2. 语言风格：{tone_text}\n"
        f"3. 优化重点：{focus_text}\n"
        "4. 保留原文的核心观点与信息\n"
        "5. 符合公众号读者的阅读习惯\n"
        "6. 段落分明，逻辑连贯\n\n"
        "请直接输出优化后的全文："
    )
    return PromptSpec(SYSTEM_ROLES[FeatureType.CONTENT_OPTIMIZATION], prompt)


def build_style_prompt(content: str) -> PromptSpec:
    catalogue = "\n".join(
        f"{index}. {template_id} - {label}"
        for index, (template_id, label) in enumerate(LAYOUT_TEMPLATES.items(), start=1)
    )
    prompt = (
        "请分析下面的文章内容，推荐最合适的排版样式。\n\n"
        f"文章内容：\n{content[:STYLE_CONTENT_LIMIT]}\n\n"
        f"请从以下样式中挑选最合适的3个，并说明理由：\n{catalogue}\n\n"
        "只输出如下格式的JSON数组：\n"
        '[{"templateId": "样式ID", "reason": "推荐理由", "confidence": 0.85}]'
    )
    return PromptSpec(SYSTEM_ROLES[FeatureType.STYLE_RECOMMENDATION], prompt)


def build_analysis_prompt(content: str) -> PromptSpec:
    prompt = (
        "请评估下面文章的质量并给出改进建议。\n\n"
        f"文章内容：\n{content}\n\n"
        "评估维度：内容质量、结构逻辑、可读性、吸引力（各1-10分），"
        "综合为0-10的总分。\n\n"
        "只输出如下格式的JSON对象：\n"
        '{"score": 8.5, "suggestions": ["建议1", "建议2"], '
        '"keywords": ["关键词1", "关键词2"], "readabilityLevel": "easy|medium|hard"}'
    )
    return PromptSpec(SYSTEM_ROLES[FeatureType.ARTICLE_ANALYSIS], prompt)


def build_seo_prompt(content: str, target_keywords: Optional[Sequence[str]] = None) -> PromptSpec:
    keywords = [k.strip() for k in (target_keywords or []) if k and k.strip()]
    if keywords:
        keyword_line = f"重点关键词：{', '.join(keywords)}"
    else:
        keyword_line = "请自动识别文章的关键词"
    prompt = (
        "请为下面的文章生成SEO优化建议。\n\n"
        f"文章内容：\n{content[:SEO_CONTENT_LIMIT]}\n\n"
        f"{keyword_line}\n\n"
        "只输出如下格式的JSON对象：\n"
        '{"title": "SEO标题", "description": "文章摘要", '
        '"keywords": ["关键词1", "关键词2"], "suggestions": ["建议1", "建议2"]}'
    )
    return PromptSpec(SYSTEM_ROLES[FeatureType.SEO_OPTIMIZATION], prompt)


def build_prompt(feature: FeatureType, content: str, **options) -> PromptSpec:
    """Build the prompt for a feature.

    Args:
        feature: Feature being requested
        content: Article text
        **options: Feature-specific options (style, count, target_audience,
            tone, optimization, target_keywords). None means default.

    Returns:
        PromptSpec with system role and user prompt

    Raises:
        InvalidOption: If a style, tone or optimization value is unknown
    """
    if feature is FeatureType.TITLE_GENERATION:
        return build_title_prompt(
            content,
            style=options.get("style") or DEFAULT_TITLE_STYLE,
            count=clamp_title_count(options.get("count")),
        )
    if feature is FeatureType.CONTENT_OPTIMIZATION:
        return build_optimization_prompt(
            content,
            target_audience=options.get("target_audience"),
            tone=options.get("tone") or DEFAULT_TONE,
            optimization=options.get("optimization") or DEFAULT_OPTIMIZATION,
        )
    if feature is FeatureType.STYLE_RECOMMENDATION:
        return build_style_prompt(content)
    if feature is FeatureType.ARTICLE_ANALYSIS:
        return build_analysis_prompt(content)
    if feature is FeatureType.SEO_OPTIMIZATION:
        return build_seo_prompt(content, options.get("target_keywords"))
    raise ValueError(f"Unsupported feature: {feature}")
