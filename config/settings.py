"""
Configuration settings for the Program Report Engine.

Key Design Principle: Runtime knobs come from environment variables, never hardcoded.
Reference data (operating units, regions, default labels) lives in
config/data_dictionary.yaml and is loaded by report_engine.core.data_context.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ExportConfig:
    """Spreadsheet export configuration."""
    output_dir: str = field(
        default_factory=lambda: os.getenv("REPORT_OUTPUT_DIR", ".outputs")
    )
    # Rows per page for paginated (interactive) consumers of a matrix
    page_size: int = field(
        default_factory=lambda: int(os.getenv("REPORT_PAGE_SIZE", "50"))
    )


@dataclass
class PeriodConfig:
    """Reporting period configuration."""
    # Cutoff month (1-12) for "as of" reports when the caller gives none.
    # 12 = as of December, i.e. the full year.
    default_cutoff_month: int = field(
        default_factory=lambda: int(os.getenv("REPORT_CUTOFF_MONTH", "12"))
    )


@dataclass
class EngineConfig:
    """Main application configuration."""
    export: ExportConfig = field(default_factory=ExportConfig)
    period: PeriodConfig = field(default_factory=PeriodConfig)

    # Optional override for the data dictionary location
    data_dictionary_path: Optional[str] = field(
        default_factory=lambda: os.getenv("DATA_DICTIONARY_PATH") or None
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    def validate(self) -> None:
        """Raise ValueError on settings that can never produce a report."""
        if not 1 <= self.period.default_cutoff_month <= 12:
            raise ValueError(
                f"REPORT_CUTOFF_MONTH must be 1-12, got {self.period.default_cutoff_month}"
            )
        if self.export.page_size < 1:
            raise ValueError(f"REPORT_PAGE_SIZE must be positive, got {self.export.page_size}")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"LOG_LEVEL must be a logging level name, got {self.log_level}")


# Global config instance
_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """Get or create the global configuration."""
    global _config
    if _config is None:
        _config = EngineConfig()
        _config.validate()
    return _config


def reset_config():
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
