"""
Configuration management and loading.

Reads the service settings from YAML with strict validation, then applies
environment overrides for the model provider.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from ..core.features import FeatureType
from ..core.orchestrator import UserIdentity
from ..core.pricing import PRICING_TABLE, ModelPricing, PricingTable
from ..core.quota import CAPABILITIES, DEFAULT_QUOTA_TABLE, QuotaTable, TierPolicy
from ..sdk.openai_client import DEFAULT_MODEL, DEFAULT_TIMEOUT_SECONDS
from ..storage.db import DEFAULT_DB_PATH


CONFIG_ENV_VAR = "AI_WRITING_ASSISTANT_CONFIG"


@dataclass(frozen=True)
class ModelConfig:
    """Completion endpoint settings."""
    name: str = DEFAULT_MODEL
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = 0

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("model.name cannot be empty")
        if self.timeout_seconds <= 0:
            raise ValueError("model.timeout_seconds must be > 0")
        if self.max_retries < 0:
            raise ValueError("model.max_retries must be >= 0")


@dataclass(frozen=True)
class StorageConfig:
    db_path: str = DEFAULT_DB_PATH


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    file: str = ""


@dataclass(frozen=True)
class AppConfig:
    """Complete service configuration."""
    model: ModelConfig = field(default_factory=ModelConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    log: LogConfig = field(default_factory=LogConfig)
    pricing: PricingTable = PRICING_TABLE
    quotas: QuotaTable = DEFAULT_QUOTA_TABLE
    tokens: Dict[str, UserIdentity] = field(default_factory=dict)

    def __post_init__(self):
        if not self.pricing.supports(self.model.name):
            raise ValueError(
                f"No pricing configured for model '{self.model.name}'; add it under 'pricing'"
            )


_TOP_KEYS = {'model', 'storage', 'log', 'pricing', 'quotas', 'tokens'}
_MODEL_KEYS = {'name', 'api_key', 'base_url', 'timeout_seconds', 'max_retries'}
_LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}


def _section(raw: Mapping, key: str) -> Dict[str, Any]:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be a dictionary")
    return value


def _reject_unknown(data: Mapping, allowed: set, path: str) -> None:
    unknown = set(data.keys()) - allowed
    if unknown:
        raise ValueError(f"Unknown keys in {path}: {unknown}")


def _parse_model(data: Dict[str, Any], env: Mapping[str, str]) -> ModelConfig:
    _reject_unknown(data, _MODEL_KEYS, "model")

    timeout = data.get('timeout_seconds', DEFAULT_TIMEOUT_SECONDS)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise ValueError("'model.timeout_seconds' must be a number")
    retries = data.get('max_retries', 0)
    if isinstance(retries, bool) or not isinstance(retries, int):
        raise ValueError("'model.max_retries' must be an integer")

    return ModelConfig(
        name=env.get('OPENAI_MODEL') or str(data.get('name') or DEFAULT_MODEL),
        api_key=env.get('OPENAI_API_KEY') or data.get('api_key'),
        base_url=env.get('OPENAI_BASE_URL') or data.get('base_url'),
        timeout_seconds=float(timeout),
        max_retries=retries,
    )


def _parse_log(data: Dict[str, Any]) -> LogConfig:
    _reject_unknown(data, {'level', 'file'}, "log")
    level = str(data.get('level', 'INFO')).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"'log.level' must be one of: {sorted(_LOG_LEVELS)}")
    return LogConfig(level=level, file=str(data.get('file') or ""))


def _parse_price(value: Any, path: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"'{path}' must be a number")
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"'{path}' must be a number")
    if not price.is_finite() or price < 0:
        raise ValueError(f"'{path}' must be >= 0")
    return price


def _parse_pricing(data: Dict[str, Any]) -> PricingTable:
    overrides = {}
    for model, prices in data.items():
        path = f"pricing.{model}"
        if not isinstance(prices, dict):
            raise ValueError(f"'{path}' must be a dictionary")
        _reject_unknown(prices, {'input_cost_per_1k', 'output_cost_per_1k'}, path)
        for key in ('input_cost_per_1k', 'output_cost_per_1k'):
            if key not in prices:
                raise ValueError(f"Missing required '{key}' in {path}")
        overrides[str(model)] = ModelPricing(
            input_cost_per_1k=_parse_price(prices['input_cost_per_1k'], f"{path}.input_cost_per_1k"),
            output_cost_per_1k=_parse_price(prices['output_cost_per_1k'], f"{path}.output_cost_per_1k"),
        )
    return PRICING_TABLE.with_overrides(overrides)


def _parse_tier(name: str, data: Any) -> TierPolicy:
    path = f"quotas.{name}"
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")
    _reject_unknown(data, {'daily_limits', 'features'}, path)

    limits_data = data.get('daily_limits')
    if not isinstance(limits_data, dict):
        raise ValueError(f"Missing required 'daily_limits' in {path}")
    known = {f.value for f in FeatureType}
    _reject_unknown(limits_data, known, f"{path}.daily_limits")
    missing = known - set(limits_data.keys())
    if missing:
        raise ValueError(f"{path}.daily_limits missing features: {sorted(missing)}")

    limits = {}
    for feature in FeatureType:
        cap = limits_data[feature.value]
        if isinstance(cap, bool) or not isinstance(cap, int) or cap < -1:
            raise ValueError(f"'{path}.daily_limits.{feature.value}' must be an integer >= -1")
        limits[feature] = cap

    flags_data = data.get('features') or {}
    if not isinstance(flags_data, dict):
        raise ValueError(f"'{path}.features' must be a dictionary")
    _reject_unknown(flags_data, set(CAPABILITIES), f"{path}.features")
    flags = {}
    for capability, enabled in flags_data.items():
        if not isinstance(enabled, bool):
            raise ValueError(f"'{path}.features.{capability}' must be true or false")
        flags[capability] = enabled

    return TierPolicy(daily_limits=limits, features=flags)


def _parse_quotas(data: Dict[str, Any]) -> QuotaTable:
    tiers = {str(name).strip().lower(): _parse_tier(name, tier) for name, tier in data.items()}
    return QuotaTable(tiers)


def _parse_tokens(data: Dict[str, Any]) -> Dict[str, UserIdentity]:
    identities = {}
    for token, entry in data.items():
        path = f"tokens.{token}"
        if not isinstance(entry, dict):
            raise ValueError(f"'{path}' must be a dictionary")
        _reject_unknown(entry, {'id', 'email', 'subscription_type'}, path)
        if not entry.get('id'):
            raise ValueError(f"Missing required 'id' in {path}")
        identities[str(token)] = UserIdentity(
            id=str(entry['id']),
            email=str(entry.get('email') or ""),
            subscription_type=str(entry.get('subscription_type') or "free"),
        )
    return identities


def parse_config(raw_config: Optional[Mapping[str, Any]], env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Validate a raw configuration mapping.

    Raises:
        ValueError: If configuration is invalid
    """
    raw_config = raw_config or {}
    env = os.environ if env is None else env
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")
    _reject_unknown(raw_config, _TOP_KEYS, "configuration")

    storage_data = _section(raw_config, 'storage')
    _reject_unknown(storage_data, {'db_path'}, "storage")

    quotas_data = _section(raw_config, 'quotas')

    return AppConfig(
        model=_parse_model(_section(raw_config, 'model'), env),
        storage=StorageConfig(db_path=str(storage_data.get('db_path') or DEFAULT_DB_PATH)),
        log=_parse_log(_section(raw_config, 'log')),
        pricing=_parse_pricing(_section(raw_config, 'pricing')),
        quotas=_parse_quotas(quotas_data) if quotas_data else DEFAULT_QUOTA_TABLE,
        tokens=_parse_tokens(_section(raw_config, 'tokens')),
    )


def load_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load and validate configuration from a YAML file.

    Args:
        path: YAML file path; falls back to $AI_WRITING_ASSISTANT_CONFIG,
            then to built-in defaults
        env: Environment used for overrides (defaults to os.environ)

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    env = os.environ if env is None else env
    path = path or env.get(CONFIG_ENV_VAR)
    if not path:
        return parse_config({}, env)

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")

    return parse_config(raw_config, env)
