"""Generator settings, loadable from a JSON file."""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from dataclasses_json import DataClassJsonMixin


class SettingsError(RuntimeError):
    """Raised when a settings file can't be read."""


@dataclass(frozen=True)
class GeneratorSettings(DataClassJsonMixin):
    service: str | None = None
    protocol: str | None = None
    runtime_import: str = "httpbind.proto"
    module_doc: str | None = None

    @classmethod
    def load(cls, path: str | Path) -> "GeneratorSettings":
        try:
            with open(path, encoding="utf-8") as f:
                return cls.from_json(f.read())
        except OSError as err:
            raise SettingsError(f"can't read settings file {path}: {err.strerror}") from err
        except (ValueError, TypeError, KeyError) as err:
            raise SettingsError(f"invalid settings file {path}: {err}") from err

    def override(self, **options: Any) -> "GeneratorSettings":
        """Return a copy with every option that is not None applied."""
        changes = {k: v for k, v in options.items() if v is not None}
        return replace(self, **changes) if changes else self
