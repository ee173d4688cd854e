"""
Client configuration for the App Store release client.

Credentials and connection settings come from the environment and may be
overlaid by a YAML file, which keeps secrets out of pipeline definitions:

```yaml
app_store_connect:
  issuer_id: "69a6de7f-..."
  api_key: "2X9R4HXF34"
  private_key_path: "~/.appstoreconnect/private_keys/AuthKey_2X9R4HXF34.p8"
  expires_in: 1200
```
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel

from .utils import API_HOST


class ClientOptions(BaseModel):
    """Connection settings and API key material"""

    issuer_id: str
    api_key: str
    private_key: str
    # seconds a minted token stays valid
    expires_in: int = 1200
    base_url: str = API_HOST
    timeout_seconds: float = 60


ENV_SETTINGS = {
    "issuer_id": "ASC_ISSUER_ID",
    "api_key": "ASC_KEY_ID",
    "private_key": "ASC_PRIVATE_KEY",
    "private_key_path": "ASC_PRIVATE_KEY_PATH",
    "expires_in": "ASC_TOKEN_EXPIRES_IN",
    "base_url": "ASC_BASE_URL",
    "timeout_seconds": "ASC_TIMEOUT_SECONDS",
}


def load_config_file(config_path: Path) -> Dict[str, Any]:
    """
    Load the ``app_store_connect`` mapping from a YAML configuration file.

    Raises:
        FileNotFoundError: If the configuration file doesn't exist
        ValueError: If the configuration format is invalid
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Client config not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError("Client config must be a mapping")

    settings = data.get("app_store_connect", {})
    if not isinstance(settings, dict):
        raise ValueError("Config 'app_store_connect' must be a mapping")

    return settings


def load_client_options(config_path: Optional[Path] = None) -> ClientOptions:
    """Build ``ClientOptions`` from the environment, overlaid by an optional YAML file"""
    settings: Dict[str, Any] = {}
    for field, env_name in ENV_SETTINGS.items():
        value = os.getenv(env_name)
        if value:
            settings[field] = value

    if config_path is not None:
        settings.update(load_config_file(Path(config_path)))

    key_path = settings.pop("private_key_path", None)
    if key_path and not settings.get("private_key"):
        settings["private_key"] = Path(key_path).expanduser().read_text(encoding="utf-8")

    missing = [name for name in ("issuer_id", "api_key", "private_key") if not settings.get(name)]
    if missing:
        raise ValueError(f"Missing App Store Connect credentials: {', '.join(missing)}")

    return ClientOptions(**settings)
