"""
Core modules for the AI Writing Assistant.

This package contains prompt construction, response parsing, quota
policy and request orchestration for the writing features.
"""
