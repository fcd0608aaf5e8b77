import os
import yaml

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def load_config():
    config_path = os.getenv("CRICTALLY_CONFIG_PATH") or os.path.join(PROJECT_ROOT, "config", "config.yaml")
    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}


def config_value(config, section, key, default=None):
    """Read config[section][key], falling back to default for missing sections or keys."""
    value = (config.get(section) or {}).get(key)
    return default if value is None else value
