from __future__ import annotations

import json
import logging

from result import Err, Ok, Result

from gigabroom.config.defaults import default_config
from gigabroom.config.schema import CONFIG_PATH, AppConfig
from gigabroom.services.fs import DEFAULT_FS, FileSystem

log = logging.getLogger(__name__)


def load_config(path: str | None = None, fs: FileSystem = DEFAULT_FS) -> Result[AppConfig, str]:
    resolved = fs.expanduser(path or CONFIG_PATH)
    if not fs.exists(resolved):
        log.debug("No config at %s; using defaults", resolved)
        return Ok(default_config())

    try:
        payload = json.loads(fs.read_text(resolved))
        if not isinstance(payload, dict):
            log.warning("Config at %s is not a JSON object", resolved)
            return Err(f"Config at {resolved} must be a JSON object.")
        config = AppConfig.from_dict(payload, default_config())
    except Exception as exc:  # noqa: BLE001
        log.warning("Failed reading config at %s: %s", resolved, exc)
        return Err(f"Failed reading config at {resolved}: {exc}.")
    log.debug("Loaded config from %s", resolved)
    return Ok(config)


def sample_config_json() -> str:
    return json.dumps(default_config().to_dict(), indent=2)
