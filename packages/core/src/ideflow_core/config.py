import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "endpoint": None,  # handler endpoint URL
    "timeout": 120,  # seconds per handler request
    "max_retries": 3,  # connection attempts before giving up
    "history_limit": 10,  # conversation turns sent with each request
    "max_history": 50,  # execution records kept per session
    "review_mode": "standard",  # fast | standard | strict | pre-merge
    "store": "memory",  # memory | noop
}


def load_config(config_path: str = ".ideflow.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .ideflow.yml in the current directory
      3. IDEFLOW_ENDPOINT environment variable
      4. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    endpoint = os.environ.get("IDEFLOW_ENDPOINT")
    if endpoint:
        config["endpoint"] = endpoint

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Credentials are only ever read from the environment.
    config["api_key"] = os.environ.get("IDEFLOW_API_KEY")

    return config
