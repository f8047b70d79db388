"""
Configuration Management for Notegram

Loads configuration from ~/.notegram/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv

from .schemas.category import Category, CategorizationRule

logger = logging.getLogger("notegram.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".notegram"
CONFIG_PATH = CONFIG_DIR / "config.json"

TITLE_PARAMETER_PROMPT = (
    "Generate a concise and clear title for the note "
    "(maximum 50 characters, no punctuation at the end)"
)


@dataclass
class ProviderSettings:
    """Credentials and generation settings for one AI provider"""
    api_key: str = ""
    model: str = ""
    temperature: float = 0.7
    max_tokens: int = 2000
    vision_enabled: bool = False


def _default_openai() -> ProviderSettings:
    return ProviderSettings(model="gpt-4o-mini", vision_enabled=True)


def _default_claude() -> ProviderSettings:
    return ProviderSettings(model="claude-3-5-sonnet-20241022")


def _default_gemini() -> ProviderSettings:
    return ProviderSettings(model="gemini-1.5-flash", vision_enabled=True)


@dataclass
class AIConfig:
    """AI provider selection and resilience policy"""
    enabled: bool = True
    provider: str = "openai"  # "openai", "claude" or "gemini"
    openai: ProviderSettings = field(default_factory=_default_openai)
    claude: ProviderSettings = field(default_factory=_default_claude)
    gemini: ProviderSettings = field(default_factory=_default_gemini)
    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    timeout: float = 30.0  # seconds, per request
    categorization_enabled: bool = True

    def settings_for(self, provider: str) -> Optional[ProviderSettings]:
        return {
            "openai": self.openai,
            "claude": self.claude,
            "gemini": self.gemini,
        }.get(provider)


@dataclass
class PromptConfig:
    """Per-content-type prompts; empty means use the built-in default"""
    text: str = ""
    voice: str = ""
    photo: str = ""
    video: str = ""
    audio: str = ""
    document: str = ""
    general: str = (
        "Format the information as a beautiful note in Markdown format. "
        "Use headings, lists, and highlights for better readability."
    )


@dataclass
class ProcessingConfig:
    """Which content types are sent to the AI provider"""
    text: bool = True
    voice: bool = True
    photo: bool = True
    video: bool = True
    audio: bool = True
    document: bool = True


@dataclass
class CategoriesConfig:
    """Category table, rule table and how categories affect notes"""
    enabled: bool = True
    folders_enabled: bool = True
    tags_enabled: bool = False
    default_category_id: str = ""
    categories: List[Category] = field(default_factory=list)
    rules: List[CategorizationRule] = field(default_factory=list)


@dataclass
class MediaGroupConfig:
    """Media group completion detection"""
    tick_interval: float = 0.5  # seconds between scans
    inactivity_window: float = 2.0  # seconds without new items before commit


@dataclass
class RoutingConfig:
    """Where notes and attachments are written"""
    note_path_template: str = "Notegram/{{date:YYYY-MM-DD}}/{{date:HH-mm-ss}}.md"
    file_path_template: str = "Notegram/files/{{date:YYYY-MM-DD}}/{{file}}"
    force_category_id: str = ""
    override_category_folders: bool = False


def _default_parameters() -> Dict[str, str]:
    return {"title": TITLE_PARAMETER_PROMPT}


@dataclass
class NotegramConfig:
    """Main Notegram configuration"""
    ai: AIConfig = field(default_factory=AIConfig)
    prompts: PromptConfig = field(default_factory=PromptConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    categories: CategoriesConfig = field(default_factory=CategoriesConfig)
    media_group: MediaGroupConfig = field(default_factory=MediaGroupConfig)
    routing: RoutingConfig = field(default_factory=RoutingConfig)
    custom_parameters: Dict[str, str] = field(default_factory=_default_parameters)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_provider_settings(data: dict, default: ProviderSettings) -> ProviderSettings:
    """Parse one provider block, falling back to the provider's defaults"""
    return ProviderSettings(
        api_key=data.get("api_key", default.api_key),
        model=data.get("model") or default.model,
        temperature=data.get("temperature", default.temperature),
        max_tokens=data.get("max_tokens", default.max_tokens),
        vision_enabled=data.get("vision_enabled", default.vision_enabled),
    )


def _parse_ai_config(data: dict) -> AIConfig:
    """Parse ai section from config dict"""
    ai_data = data.get("ai", {})
    return AIConfig(
        enabled=ai_data.get("enabled", True),
        provider=ai_data.get("provider", "openai"),
        openai=_parse_provider_settings(ai_data.get("openai", {}), _default_openai()),
        claude=_parse_provider_settings(ai_data.get("claude", {}), _default_claude()),
        gemini=_parse_provider_settings(ai_data.get("gemini", {}), _default_gemini()),
        max_attempts=ai_data.get("max_attempts", 3),
        base_delay=ai_data.get("base_delay", 1.0),
        timeout=ai_data.get("timeout", 30.0),
        categorization_enabled=ai_data.get("categorization_enabled", True),
    )


def _parse_prompt_config(data: dict) -> PromptConfig:
    """Parse prompts section from config dict"""
    prompt_data = data.get("prompts", {})
    defaults = PromptConfig()
    return PromptConfig(
        text=prompt_data.get("text", ""),
        voice=prompt_data.get("voice", ""),
        photo=prompt_data.get("photo", ""),
        video=prompt_data.get("video", ""),
        audio=prompt_data.get("audio", ""),
        document=prompt_data.get("document", ""),
        general=prompt_data.get("general", defaults.general),
    )


def _parse_processing_config(data: dict) -> ProcessingConfig:
    """Parse processing toggles from config dict"""
    processing_data = data.get("processing", {})
    return ProcessingConfig(
        text=processing_data.get("text", True),
        voice=processing_data.get("voice", True),
        photo=processing_data.get("photo", True),
        video=processing_data.get("video", True),
        audio=processing_data.get("audio", True),
        document=processing_data.get("document", True),
    )


def _parse_categories_config(data: dict) -> CategoriesConfig:
    """Parse categories section, validating each category and rule"""
    categories_data = data.get("categories", {})
    return CategoriesConfig(
        enabled=categories_data.get("enabled", True),
        folders_enabled=categories_data.get("folders_enabled", True),
        tags_enabled=categories_data.get("tags_enabled", False),
        default_category_id=categories_data.get("default_category_id", ""),
        categories=[Category.model_validate(c) for c in categories_data.get("categories", [])],
        rules=[CategorizationRule.model_validate(r) for r in categories_data.get("rules", [])],
    )


def _parse_media_group_config(data: dict) -> MediaGroupConfig:
    """Parse media_group section from config dict"""
    group_data = data.get("media_group", {})
    return MediaGroupConfig(
        tick_interval=group_data.get("tick_interval", 0.5),
        inactivity_window=group_data.get("inactivity_window", 2.0),
    )


def _parse_routing_config(data: dict) -> RoutingConfig:
    """Parse routing section from config dict"""
    routing_data = data.get("routing", {})
    defaults = RoutingConfig()
    return RoutingConfig(
        note_path_template=routing_data.get("note_path_template", defaults.note_path_template),
        file_path_template=routing_data.get("file_path_template", defaults.file_path_template),
        force_category_id=routing_data.get("force_category_id", ""),
        override_category_folders=routing_data.get("override_category_folders", False),
    )


def load_config() -> NotegramConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (including a local .env file)
    2. Config file (~/.notegram/config.json)
    3. Default values
    """
    load_dotenv()
    config = NotegramConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.ai = _parse_ai_config(data)
            config.prompts = _parse_prompt_config(data)
            config.processing = _parse_processing_config(data)
            config.categories = _parse_categories_config(data)
            config.media_group = _parse_media_group_config(data)
            config.routing = _parse_routing_config(data)
            if "custom_parameters" in data:
                config.custom_parameters = dict(data["custom_parameters"])
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file: %s", e)

    if os.getenv("NOTEGRAM_AI_PROVIDER"):
        config.ai.provider = os.getenv("NOTEGRAM_AI_PROVIDER").lower()
    if os.getenv("NOTEGRAM_AI_TIMEOUT"):
        config.ai.timeout = float(os.getenv("NOTEGRAM_AI_TIMEOUT"))
    if os.getenv("NOTEGRAM_AI_MAX_ATTEMPTS"):
        config.ai.max_attempts = int(os.getenv("NOTEGRAM_AI_MAX_ATTEMPTS"))

    # Provider env var overrides (later entries win, track env-sourced keys)
    _env_provider_map = {
        "OPENAI_API_KEY": ("openai", "api_key"),
        "NOTEGRAM_OPENAI_MODEL": ("openai", "model"),
        "CLAUDE_API_KEY": ("claude", "api_key"),
        "ANTHROPIC_API_KEY": ("claude", "api_key"),
        "NOTEGRAM_CLAUDE_MODEL": ("claude", "model"),
        "GOOGLE_API_KEY": ("gemini", "api_key"),
        "GEMINI_API_KEY": ("gemini", "api_key"),
        "NOTEGRAM_GEMINI_MODEL": ("gemini", "model"),
    }
    for env_var, (provider, attr) in _env_provider_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.ai.settings_for(provider), attr, val)
            config._env_sourced_keys.add(f"{provider}.{attr}")

    return config


def _provider_section(name: str, settings: ProviderSettings, env_sourced: set) -> dict:
    return {
        "api_key": "" if f"{name}.api_key" in env_sourced else settings.api_key,
        "model": settings.model,
        "temperature": settings.temperature,
        "max_tokens": settings.max_tokens,
        "vision_enabled": settings.vision_enabled,
    }


def save_config(config: NotegramConfig) -> None:
    """Save configuration to file.

    API keys that were sourced from environment variables are written as
    empty strings so that secrets are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    data = {
        "ai": {
            "enabled": config.ai.enabled,
            "provider": config.ai.provider,
            "openai": _provider_section("openai", config.ai.openai, env_sourced),
            "claude": _provider_section("claude", config.ai.claude, env_sourced),
            "gemini": _provider_section("gemini", config.ai.gemini, env_sourced),
            "max_attempts": config.ai.max_attempts,
            "base_delay": config.ai.base_delay,
            "timeout": config.ai.timeout,
            "categorization_enabled": config.ai.categorization_enabled,
        },
        "prompts": {
            "text": config.prompts.text,
            "voice": config.prompts.voice,
            "photo": config.prompts.photo,
            "video": config.prompts.video,
            "audio": config.prompts.audio,
            "document": config.prompts.document,
            "general": config.prompts.general,
        },
        "processing": {
            "text": config.processing.text,
            "voice": config.processing.voice,
            "photo": config.processing.photo,
            "video": config.processing.video,
            "audio": config.processing.audio,
            "document": config.processing.document,
        },
        "categories": {
            "enabled": config.categories.enabled,
            "folders_enabled": config.categories.folders_enabled,
            "tags_enabled": config.categories.tags_enabled,
            "default_category_id": config.categories.default_category_id,
            "categories": [c.model_dump(mode="json") for c in config.categories.categories],
            "rules": [r.model_dump(mode="json") for r in config.categories.rules],
        },
        "media_group": {
            "tick_interval": config.media_group.tick_interval,
            "inactivity_window": config.media_group.inactivity_window,
        },
        "routing": {
            "note_path_template": config.routing.note_path_template,
            "file_path_template": config.routing.file_path_template,
            "force_category_id": config.routing.force_category_id,
            "override_category_folders": config.routing.override_category_folders,
        },
        "custom_parameters": config.custom_parameters,
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)
