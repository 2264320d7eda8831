"""
Data Context Module

Loads report reference data from config/data_dictionary.yaml: the closed
component list, fixed Program Management packages, default expense
particulars, the operating unit to region map and display labels.
Update config/data_dictionary.yaml to change these without code changes.
"""
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional

import yaml

logger = logging.getLogger(__name__)

# Find config directory
def _get_config_dir() -> Path:
    """Get the config directory path."""
    # Try relative to this file
    core_dir = Path(__file__).parent
    project_root = core_dir.parent.parent
    config_dir = project_root / "config"

    if config_dir.exists():
        return config_dir

    # Try current working directory
    cwd_config = Path.cwd() / "config"
    if cwd_config.exists():
        return cwd_config

    raise FileNotFoundError(f"Config directory not found. Tried: {config_dir}, {cwd_config}")


class DataContext:
    """
    Read-only reference data for report runs.

    Usage:
        context = get_data_context()
        region = context.region_for("RPMO 4A")
        label = context.label("no_data")
    """

    def __init__(self, yaml_path: Path = None):
        """
        Initialize the data context.

        Args:
            yaml_path: Path to a data dictionary (defaults to config/data_dictionary.yaml)
        """
        self.yaml_path = Path(yaml_path) if yaml_path else _get_config_dir() / "data_dictionary.yaml"
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self):
        """Load configuration from YAML file."""
        if self.yaml_path.exists():
            try:
                with open(self.yaml_path, 'r', encoding='utf-8') as f:
                    self._config = yaml.safe_load(f) or {}
                logger.info(f"Loaded data dictionary from {self.yaml_path}")
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Failed to load data dictionary: {e}")
                self._config = self._get_fallback_config()
        else:
            logger.warning(f"Data dictionary not found at {self.yaml_path}. Using fallback.")
            self._config = self._get_fallback_config()

    def _get_fallback_config(self) -> Dict[str, Any]:
        """Return fallback configuration if YAML can't be loaded."""
        return {
            "components": [
                "Social Preparation",
                "Production and Livelihood",
                "Marketing and Enterprise",
                "Program Management",
            ],
            "program_management_packages": [
                "Trainings",
                "Staff Requirements",
                "Office Requirements",
                "Activities",
            ],
            "pinned_packages": {"Production and Livelihood": ["Trainings"]},
            "default_particulars": {
                "default": "Other Expenses",
                "staffing": "Salaries & Wages",
                "office": "Office Equipment",
            },
            "operating_units": {},
            "excluded_regions": ["National Capital Region (NCR)"],
            "labels": {
                "no_data": "No activities for this component.",
                "grand_total": "GRAND TOTAL",
                "unspecified": "Unspecified",
                "unmapped_region": "Unmapped Region",
                "indicator_column": "Program/Activity/Project",
            },
        }

    # ==================== ACCESSORS ====================

    @property
    def components(self) -> List[str]:
        return list(self._config.get("components", []))

    @property
    def program_management_packages(self) -> List[str]:
        return list(self._config.get("program_management_packages", []))

    def pinned_packages(self, group: str) -> List[str]:
        """Packages listed first under a group."""
        return list((self._config.get("pinned_packages") or {}).get(group, []))

    def default_particular(self, kind: str = "default") -> str:
        """Particular label for an object code missing from the code reference."""
        particulars = self._config.get("default_particulars") or {}
        return particulars.get(kind) or particulars.get("default", "Other Expenses")

    @property
    def region_map(self) -> Dict[str, str]:
        return dict(self._config.get("operating_units") or {})

    @property
    def excluded_regions(self) -> List[str]:
        return list(self._config.get("excluded_regions") or [])

    def region_for(self, operating_unit: Optional[str]) -> str:
        """Region of an operating unit, or the unmapped-region label."""
        if operating_unit and operating_unit in self.region_map:
            return self.region_map[operating_unit]
        return self.label("unmapped_region")

    def label(self, key: str) -> str:
        """Display label by key; falls back to the key itself."""
        labels = self._config.get("labels") or {}
        return labels.get(key, key)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._config)


# Singleton instance
_data_context: Optional[DataContext] = None

def get_data_context() -> DataContext:
    """Get the configured data context instance."""
    global _data_context
    if _data_context is None:
        from config.settings import get_config
        _data_context = DataContext(get_config().data_dictionary_path)
    return _data_context

def reset_data_context():
    """Reset the data context (useful for testing or reloading config)."""
    global _data_context
    _data_context = None
