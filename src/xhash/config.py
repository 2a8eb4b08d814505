"""Typed configuration loader for the xhash command."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .contracts.error import BadInputError

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}
EXPORT_FORMS = ("pairs", "sequence")


def _parse_bool(raw: Any, name: str) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        normalized = raw.strip().lower()
        if normalized in _TRUE:
            return True
        if normalized in _FALSE:
            return False
    raise BadInputError(f"{name} must be boolean")


@dataclass
class ExportPolicy:
    form: str = "pairs"
    nested: bool = True
    indent: int = 2

    def validate(self) -> None:
        if self.form not in EXPORT_FORMS:
            raise BadInputError("export.form must be 'pairs' or 'sequence'")
        if self.indent < 0:
            raise BadInputError("export.indent must be >= 0")


@dataclass
class SnapshotPolicy:
    compress: bool = False
    max_payload_bytes: int = 256 * 1024 * 1024

    def validate(self) -> None:
        if self.max_payload_bytes <= 0:
            raise BadInputError("snapshot.max_payload_bytes must be > 0")


@dataclass
class AppConfig:
    export: ExportPolicy = field(default_factory=ExportPolicy)
    snapshot: SnapshotPolicy = field(default_factory=SnapshotPolicy)

    @classmethod
    def load(cls, path: Path | None) -> AppConfig:
        if path is None:
            cfg = cls()
        else:
            try:
                data = tomllib.loads(path.read_text(encoding="utf-8"))
            except FileNotFoundError as exc:
                raise BadInputError(f"Config file not found: {path}") from exc
            except tomllib.TOMLDecodeError as exc:
                raise BadInputError(f"Invalid TOML: {exc}") from exc
            cfg = cls.from_dict(data)
        cfg.apply_env_overrides(os.environ)
        cfg.validate()
        return cfg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        export_data = data.get("export", {})
        if not isinstance(export_data, dict):
            raise BadInputError("[export] section must be a table")
        snapshot_data = data.get("snapshot", {})
        if not isinstance(snapshot_data, dict):
            raise BadInputError("[snapshot] section must be a table")

        export_kwargs: dict[str, Any] = {}
        if "form" in export_data:
            export_kwargs["form"] = str(export_data["form"]).strip().lower()
        if "nested" in export_data:
            export_kwargs["nested"] = _parse_bool(export_data["nested"], "export.nested")
        if "indent" in export_data:
            try:
                export_kwargs["indent"] = int(export_data["indent"])
            except (TypeError, ValueError) as exc:
                raise BadInputError("export.indent must be an integer") from exc
        unknown = set(export_data) - {"form", "nested", "indent"}
        if unknown:
            raise BadInputError(f"Unknown [export] keys: {', '.join(sorted(unknown))}")

        snapshot_kwargs: dict[str, Any] = {}
        if "compress" in snapshot_data:
            snapshot_kwargs["compress"] = _parse_bool(snapshot_data["compress"], "snapshot.compress")
        if "max_payload_bytes" in snapshot_data:
            try:
                snapshot_kwargs["max_payload_bytes"] = int(snapshot_data["max_payload_bytes"])
            except (TypeError, ValueError) as exc:
                raise BadInputError("snapshot.max_payload_bytes must be an integer") from exc
        unknown = set(snapshot_data) - {"compress", "max_payload_bytes"}
        if unknown:
            raise BadInputError(f"Unknown [snapshot] keys: {', '.join(sorted(unknown))}")

        return cls(export=ExportPolicy(**export_kwargs), snapshot=SnapshotPolicy(**snapshot_kwargs))

    def apply_env_overrides(self, env: Mapping[str, str]) -> None:
        mapping: dict[str, tuple[Any, str, Callable[[str], Any]]] = {
            "XHASH_EXPORT_FORM": (self.export, "form", lambda raw: raw.strip().lower()),
            "XHASH_EXPORT_NESTED": (self.export, "nested", lambda raw: _parse_bool(raw, "XHASH_EXPORT_NESTED")),
            "XHASH_EXPORT_INDENT": (self.export, "indent", int),
            "XHASH_SNAPSHOT_COMPRESS": (
                self.snapshot,
                "compress",
                lambda raw: _parse_bool(raw, "XHASH_SNAPSHOT_COMPRESS"),
            ),
            "XHASH_SNAPSHOT_MAX_BYTES": (self.snapshot, "max_payload_bytes", int),
        }
        for key, (section, attr, caster) in mapping.items():
            raw_value = env.get(key)
            if raw_value is None:
                continue
            try:
                value = caster(raw_value)
            except (BadInputError, ValueError) as exc:
                raise BadInputError(f"Invalid env override {key}={raw_value!r}") from exc
            setattr(section, attr, value)

    def validate(self) -> None:
        self.export.validate()
        self.snapshot.validate()


DEFAULT_CONFIG = AppConfig()


def load_app_config(path: str | None) -> AppConfig:
    config_path = Path(path) if path else None
    return AppConfig.load(config_path)


__all__ = [
    "AppConfig",
    "DEFAULT_CONFIG",
    "EXPORT_FORMS",
    "ExportPolicy",
    "SnapshotPolicy",
    "load_app_config",
]
