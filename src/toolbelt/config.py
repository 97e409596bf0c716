import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path

from .constants import DEFAULT_TIMEOUT, DEFAULT_WORKSPACE

_DIR_NAME = "toolbelt"


def get_app_dir() -> Path:
    """Return the app data directory, creating it if needed."""
    local = os.environ.get("LOCALAPPDATA", "")
    if local:
        p = Path(local) / _DIR_NAME
    else:
        p = Path.home() / ".config" / _DIR_NAME
    p.mkdir(parents=True, exist_ok=True)
    return p


def settings_path() -> Path:
    return get_app_dir() / "settings.json"


# Environment variable -> Settings field
_ENV_OVERRIDES = {
    "TOOLBELT_ACCOUNT": "account",
    "TOOLBELT_WORKSPACE": "workspace",
    "TOOLBELT_TOKEN": "token",
    "TOOLBELT_CLUSTER": "cluster",
    "TOOLBELT_TIMEOUT": "timeout",
}


@dataclass
class Settings:
    account: str = ""
    workspace: str = DEFAULT_WORKSPACE
    token: str = ""  # session token written by the login flow
    cluster: str = ""  # sent as x-vtex-upstream-target when set
    timeout: int = DEFAULT_TIMEOUT  # seconds
    rewriter_url: str = ""  # overrides the default rewriter endpoint
    verbose: bool = False

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        path = path or settings_path()
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            # Only use keys that exist in the dataclass
            valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
            filtered = {k: v for k, v in data.items() if k in valid_keys}
            return cls(**filtered)
        except (FileNotFoundError, json.JSONDecodeError, TypeError):
            return cls()

    def save(self, path: Path | None = None) -> None:
        path = path or settings_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json_tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, indent=2)
        os.replace(tmp, path)

    def apply_env(self, environ=None) -> "Settings":
        """Override fields from TOOLBELT_* environment variables."""
        environ = os.environ if environ is None else environ
        for var, name in _ENV_OVERRIDES.items():
            value = environ.get(var)
            if not value:
                continue
            if name == "timeout":
                try:
                    value = int(value)
                except ValueError:
                    continue
            setattr(self, name, value)
        return self

    def set_value(self, key: str, value: str) -> None:
        """Set a field from its string form (used by `config set`)."""
        if key not in self.__dataclass_fields__:
            raise KeyError(key)
        current = getattr(self, key)
        if isinstance(current, bool):
            setattr(self, key, value.lower() in ("1", "true", "yes", "on"))
        elif isinstance(current, int):
            setattr(self, key, int(value))
        else:
            setattr(self, key, value)
