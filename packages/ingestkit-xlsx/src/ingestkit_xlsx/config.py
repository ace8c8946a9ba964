"""Configuration model for the ingestkit-xlsx reader.

Provides ``XlsxReaderConfig`` with all tunable parameters and sensible
defaults.  Supports loading overrides from YAML or JSON files via the
``from_file()`` classmethod.
"""

from __future__ import annotations

import json
import pathlib

from pydantic import BaseModel


class XlsxReaderConfig(BaseModel):
    """All tunable parameters with sensible defaults for .xlsx reading."""

    # --- Identity ---
    parser_version: str = "ingestkit_xlsx:1.0.0"

    # --- Security / Resource Limits ---
    max_file_size_mb: int = 100
    allowed_extensions: list[str] = [".xlsx", ".xlsm"]
    enable_security_scan: bool = True

    # --- Shared strings ---
    # One ordinal per <si> item (runs joined) instead of one per <t> element.
    merge_rich_text_runs: bool = False

    # --- Logging / PII Safety ---
    log_sample_data: bool = False

    @classmethod
    def from_file(cls, path: str) -> XlsxReaderConfig:
        """Load configuration from a YAML or JSON file.

        File format is detected by extension: ``.yaml`` / ``.yml`` for YAML,
        ``.json`` for JSON.  Any keys present in the file override the
        corresponding defaults; keys not present retain their defaults.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the file extension is not recognized.
            ImportError: If a YAML file is provided but ``pyyaml`` is not
                installed.
        """
        file_path = pathlib.Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        suffix = file_path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            try:
                import yaml  # type: ignore[import-untyped]
            except ImportError as exc:
                raise ImportError(
                    "pyyaml is required to load YAML config files. "
                    "Install it with: pip install ingestkit-xlsx[yaml]"
                ) from exc
            with open(file_path) as fh:
                data = yaml.safe_load(fh)
        elif suffix == ".json":
            with open(file_path) as fh:
                data = json.load(fh)
        else:
            raise ValueError(
                f"Unsupported config file extension '{suffix}'. "
                "Use .yaml, .yml, or .json."
            )

        if data is None:
            data = {}

        return cls(**data)
