"""Load settings.yaml into typed dataclasses. Reports which providers have API keys."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    temperature: float = 0.7
    base_url: str | None = None
    alt_api_key_envs: list[str] = field(default_factory=list)


@dataclass
class RoundPromptConfig:
    instruction: str
    serious: str
    casual: str


@dataclass
class PromptsConfig:
    system: str
    rounds: dict[int, RoundPromptConfig]
    history_header: str
    context_header: str
    refine: str
    moderator_system: str
    moderator: str
    moderator_styles: dict[str, str] = field(default_factory=dict)


@dataclass
class DefaultsConfig:
    rounds: int
    output_dir: Path
    moderator: str
    max_rounds: int = 3
    moderator_style: str = "neutral"
    default_panel: list[str] = field(default_factory=list)
    moderator_max_tokens: int = 500
    quick_summary_max_tokens: int = 200


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    available_providers: set[str] = field(default_factory=set)


def read_api_key(model_cfg: ModelConfig) -> str:
    """Return the first non-empty key among the model's env vars, or ""."""
    for env_name in [model_cfg.api_key_env, *model_cfg.alt_api_key_envs]:
        value = os.environ.get(env_name, "").strip()
        if value:
            return value
    return ""


def _load_prompts(prompts_raw: dict) -> PromptsConfig:
    rounds = {
        int(number): RoundPromptConfig(
            instruction=str(round_raw["instruction"]),
            serious=str(round_raw.get("serious", "")),
            casual=str(round_raw.get("casual", "")),
        )
        for number, round_raw in prompts_raw["rounds"].items()
    }
    if not rounds:
        raise ValueError("prompts.rounds must define at least one round")
    return PromptsConfig(
        system=prompts_raw["system"],
        rounds=rounds,
        history_header=prompts_raw.get("history_header", "Earlier in this conversation the user asked:"),
        context_header=prompts_raw["context_header"],
        refine=prompts_raw["refine"],
        moderator_system=prompts_raw["moderator_system"],
        moderator=prompts_raw["moderator"],
        moderator_styles={str(k): str(v) for k, v in prompts_raw.get("moderator_styles", {}).items()},
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs missing API keys but does not raise; callers check
    available_providers count.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        rounds=int(defaults_raw["rounds"]),
        max_rounds=int(defaults_raw.get("max_rounds", 3)),
        output_dir=Path(defaults_raw["output_dir"]),
        moderator=str(defaults_raw["moderator"]),
        moderator_style=str(defaults_raw.get("moderator_style", "neutral")),
        default_panel=list(defaults_raw.get("default_panel", [])),
        moderator_max_tokens=int(defaults_raw.get("moderator_max_tokens", 500)),
        quick_summary_max_tokens=int(defaults_raw.get("quick_summary_max_tokens", 200)),
    )

    prompts = _load_prompts(raw["prompts"])

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            temperature=float(model_raw.get("temperature", 0.7)),
            base_url=model_raw.get("base_url"),
            alt_api_key_envs=list(model_raw.get("alt_api_key_envs", [])),
        )
        models[provider_name] = model_cfg

        if read_api_key(model_cfg):
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s (set %s in .env)",
                provider_name,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        available_providers=available_providers,
    )
