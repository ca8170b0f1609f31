"""Config loader — YAML serialization and deserialization for DashboardConfig.

Provides round-trip save/load so column synonyms, dedicated-reach platforms
and pacing plans can be reviewed, version-controlled, and edited as
human-readable YAML configuration files.
"""

from pathlib import Path

import yaml

from .models import DashboardConfig


def save_config(config: DashboardConfig, path: str | Path) -> None:
    """Serialize a DashboardConfig to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.to_dict()
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False,
                  allow_unicode=True, width=120)


def load_config(path: str | Path) -> DashboardConfig:
    """Deserialize a DashboardConfig from a YAML file.

    Raises:
        ValueError: If the file does not contain a YAML mapping.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} does not contain a mapping")
    return DashboardConfig.from_dict(data)
