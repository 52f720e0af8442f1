import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from aishell.errors import ConfigError

CONFIG_DIR = Path.home() / ".config" / "aishell"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "config.yml"
API_KEY_PATH = CONFIG_DIR / "openai-api-key"
HISTORY_PATH = Path.home() / ".local" / "state" / "aishell" / "history"

DEFAULT_MODEL = "gpt-4.1-mini"


@dataclass
class AppConfig:
    api_key: str
    base_url: Optional[str] = None
    model: str = DEFAULT_MODEL
    max_completion_tokens: int = 4096
    max_tool_rounds: int = 32
    compress_for_llm: bool = False
    show_raw_model_json: bool = False
    history_path: Path = HISTORY_PATH


def read_api_key(path: Path = API_KEY_PATH) -> str:
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        key = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise ConfigError(f"failed to open OpenAI API key in {path}: {e}") from e
    if not key:
        raise ConfigError(f"OpenAI API key file {path} is empty")
    return key


def load_config(path: Optional[Path] = None, api_key_path: Path = API_KEY_PATH) -> AppConfig:
    """
    Load the YAML config file, falling back to defaults when it does not exist.

    The API key is taken from openai.api_key, then OPENAI_API_KEY, then the
    credential file.
    """
    path = path or DEFAULT_CONFIG_PATH
    data = {}
    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"invalid config file {path}: expected a mapping at top level")

    openai_cfg = data.get("openai", {}) or {}
    agent_cfg = data.get("agent", {}) or {}

    api_key = openai_cfg.get("api_key") or os.environ.get("OPENAI_API_KEY") or read_api_key(api_key_path)

    max_tool_rounds = int(agent_cfg.get("max_tool_rounds", 32))
    if max_tool_rounds < 1:
        raise ConfigError("agent.max_tool_rounds must be at least 1")

    return AppConfig(
        api_key=api_key,
        base_url=openai_cfg.get("base_url"),
        model=openai_cfg.get("model", DEFAULT_MODEL),
        max_completion_tokens=int(openai_cfg.get("max_completion_tokens", 4096)),
        max_tool_rounds=max_tool_rounds,
        compress_for_llm=bool(agent_cfg.get("compress_for_llm", False)),
        show_raw_model_json=bool(agent_cfg.get("show_raw_model_json", False)),
        history_path=Path(agent_cfg.get("history_path", HISTORY_PATH)).expanduser(),
    )
