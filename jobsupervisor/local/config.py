import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import jobsupervisor.settings as default_settings

log = logging.getLogger(__name__)

# Loop timing settings: seconds, never negative. None is allowed where noted.
TIMING_SETTINGS = {
    "DEFAULT_CHECK_INTERVAL_SECONDS": True,
    "DEFAULT_RESTART_TTL_SECONDS": True,
    "STOP_GRACE_SECONDS": False,
}


def check_seconds(value: Any, allow_none: bool = True) -> Optional[float]:
    """
    Validates a loop timing value given in seconds.

    :param value: The value to check.
    :param allow_none: Whether None (no sleep, no lifetime) is accepted.
    :return: The value unchanged.
    :raises ValueError: If the value is not a non-negative number, or None where not allowed.
    """
    if value is None:
        if not allow_none:
            raise ValueError("must be a number")
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValueError("must be a non-negative number")
    return value


def _coerce(key: str, current: Any, value: Any) -> Any:
    """
    Converts an override to the type of the default it replaces.

    :raises ValueError: If a timing value is negative, or None where not allowed.
    """
    if key in TIMING_SETTINGS:
        return check_seconds(value, TIMING_SETTINGS[key])
    if isinstance(current, Path):
        return Path(value)
    if isinstance(current, bool) and not isinstance(value, bool):
        return str(value).strip().lower() in ("1", "true", "yes", "on")
    return value


class MergedSettings:
    """
    Effective supervisor settings.

    Values come from `settings.py` (which already applied `.env`), then from
    the overrides file for the keys listed in `MODIFIABLE_SETTINGS`.
    """

    def __init__(self, overrides_path: Optional[Path] = None) -> None:
        """
        :param overrides_path: Overrides file, defaults to settings.OVERRIDES_JSON_PATH.
        """
        self.OVERRIDES_JSON_PATH: Path = overrides_path or default_settings.OVERRIDES_JSON_PATH

        self._load_defaults()
        self._load_overrides()

    def _load_defaults(self) -> None:
        for name in dir(default_settings):
            if name.isupper() and name != "OVERRIDES_JSON_PATH":
                setattr(self, name, getattr(default_settings, name))

    def _read_overrides_file(self) -> Dict[str, Any]:
        if not self.OVERRIDES_JSON_PATH.exists():
            return {}
        try:
            data = json.loads(self.OVERRIDES_JSON_PATH.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            log.error(f"Could not read settings overrides '{self.OVERRIDES_JSON_PATH}': {e}")
            return {}
        if not isinstance(data, dict):
            log.error(f"Settings overrides '{self.OVERRIDES_JSON_PATH}' must hold a JSON object")
            return {}
        return data

    def _load_overrides(self) -> None:
        """
        Applies the overrides file on top of the defaults.

        Unknown keys, keys outside `MODIFIABLE_SETTINGS` and invalid timing
        values are skipped with a warning.
        """
        overrides = self._read_overrides_file()
        if overrides:
            log.info(f"Applying {len(overrides)} settings override(s) from {self.OVERRIDES_JSON_PATH}")

        for key, value in overrides.items():
            if not hasattr(self, key):
                log.warning(f"Unknown setting '{key}' in overrides, skipped")
                continue
            if key not in self.MODIFIABLE_SETTINGS:
                log.warning(f"Setting '{key}' cannot be overridden at runtime, skipped")
                continue
            try:
                setattr(self, key, _coerce(key, getattr(self, key), value))
            except (TypeError, ValueError) as e:
                log.warning(f"Invalid override for '{key}' ({value!r}): {e}")
                continue
            log.debug(f"Setting {key} overridden: {value!r}")

    def save_overrides(self, overrides_to_save: Dict[str, Any]) -> None:
        """
        Merges the modifiable entries of `overrides_to_save` into the
        overrides file. Other keys are dropped.

        :param overrides_to_save: Setting names mapped to their new values.
        """
        accepted = {k: v for k, v in overrides_to_save.items() if k in self.MODIFIABLE_SETTINGS}
        if not accepted:
            log.warning("Nothing to save: none of the given settings is modifiable")
            return

        merged = self._read_overrides_file()
        merged.update(accepted)
        try:
            self.OVERRIDES_JSON_PATH.parent.mkdir(parents=True, exist_ok=True)
            self.OVERRIDES_JSON_PATH.write_text(json.dumps(merged, indent=4), encoding="utf-8")
        except OSError as e:
            log.error(f"Could not write settings overrides '{self.OVERRIDES_JSON_PATH}': {e}")
            return
        log.info(f"Saved settings override(s) {sorted(accepted)} to {self.OVERRIDES_JSON_PATH}")


effective_settings = MergedSettings()
