import os
import toml
from . import catalog
from .cli_logger import logger
from .exceptions import ConfigError

CONFIG_FILE = "depfetch.toml"

DEFAULT_SETTINGS = {
    "download_dir": "download",
    "jobs": 0,
    "timeout": 300,
    "link_file": "depfetch.cmake",
}


def load_config(path="."):
    config_path = os.path.join(path, CONFIG_FILE)
    logger.debug(f"Loading configuration from {config_path}")
    if os.path.exists(config_path):
        try:
            with open(config_path, "r") as f:
                return toml.load(f)
        except toml.TomlDecodeError as e:
            logger.error(f"Error decoding TOML file at {config_path}: {e}")
            logger.info("Please check the file's format for syntax errors.")
        except IOError as e:
            logger.error(f"Error reading configuration file at {config_path}: {e}")
            logger.info("Please check file permissions.")
    return {}


def save_config(config, path="."):
    config_path = os.path.join(path, CONFIG_FILE)
    logger.debug(f"Saving configuration to {config_path}")
    try:
        with open(config_path, "w") as f:
            toml.dump(config, f)
    except IOError as e:
        logger.error(f"Error saving configuration to {config_path}: {e}")
        logger.info("Please check file permissions and ensure the directory is writable.")
        return False
    return True


def _as_int(name, value):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Setting '{name}' must be an integer, got {value!r}")


def get_settings(config, path="."):
    """
    Resolves the ``[settings]`` table against defaults and the environment.

    ``DEPFETCH_DOWNLOAD_DIR`` and ``DEPFETCH_JOBS`` take precedence over the
    file. Relative paths are anchored at the project directory.
    """
    settings = dict(DEFAULT_SETTINGS)
    settings.update(config.get("settings", {}))
    if os.environ.get("DEPFETCH_DOWNLOAD_DIR"):
        settings["download_dir"] = os.environ["DEPFETCH_DOWNLOAD_DIR"]
    if os.environ.get("DEPFETCH_JOBS"):
        settings["jobs"] = os.environ["DEPFETCH_JOBS"]

    settings["jobs"] = _as_int("jobs", settings["jobs"]) or os.cpu_count() or 1
    settings["timeout"] = _as_int("timeout", settings["timeout"])
    for key in ("download_dir", "link_file"):
        if not os.path.isabs(settings[key]):
            settings[key] = os.path.abspath(os.path.join(path, settings[key]))
    return settings


def configured_descriptors(config, names=None):
    """
    Builds descriptors for the ``[dependencies]`` table.

    A value of ``true`` selects the catalog entry as-is, a table overrides
    catalog fields (or fully describes a custom dependency), ``false`` skips
    it. ``names`` restricts the result and may name catalog entries that are
    not in the file.
    """
    dependencies = config.get("dependencies", {})
    if not isinstance(dependencies, dict):
        raise ConfigError("[dependencies] must be a table")

    selected = []
    for name, value in dependencies.items():
        if value is False:
            continue
        if value is not True and not isinstance(value, dict):
            raise ConfigError(f"dependencies.{name} must be true, false or a table")
        selected.append((name, value if isinstance(value, dict) else None))

    if names:
        known = dict(selected)
        selected = [(name, known.get(name)) for name in names]

    return [catalog.get_descriptor(name, overrides) for name, overrides in selected]
