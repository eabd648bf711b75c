"""Scan configuration for the Framing Takeoff extractor.

The ScanConfig class stores every tunable the pipeline uses:
- Spatial text tolerances (table column bucket width, minimum table rows)
- The page classification confidence floor
- AI vision settings (model, token budget, page types, render resolution)
- Reporting switches (default-substitution warnings, console progress)

A config object is passed explicitly into the scanner; nothing is read
from global state while a scan runs.
"""
from dataclasses import asdict, dataclass, field
from typing import List, Optional
import json
import os

import yaml

from .models import PageType


DEFAULT_AI_PAGE_TYPES = [
    PageType.FLOOR_PLAN.value,
    PageType.SECTION_DETAIL.value,
    PageType.STRUCTURAL_PLAN.value,
    PageType.ROOF_PLAN.value,
    PageType.ELEVATION.value,
]


@dataclass
class ScanConfig:
    """
    Configuration for a document scan.

    Attributes:
        table_tolerance: Column bucket width in page units for table detection
        min_table_rows: Minimum consecutive aligned lines that form a table
        classification_threshold: Minimum winning score for a non-UNKNOWN page type
        enable_ai: Run the AI vision pass after the text pipeline
        api_key: Anthropic API key (falls back to ANTHROPIC_API_KEY)
        ai_model: Model name for vision extraction
        ai_max_tokens: Response token budget per page
        ai_page_types: Page types sent to the vision service
        ai_render_dpi: Resolution used to rasterise pages for the vision service
        max_image_dimension: Longest image side sent to the vision service
        record_default_warnings: Log every default substitution to result warnings
        verbose: Print progress to stdout
    """

    table_tolerance: float = 6.0
    min_table_rows: int = 3
    classification_threshold: float = 15.0

    enable_ai: bool = False
    api_key: Optional[str] = None
    ai_model: str = "claude-sonnet-4-20250514"
    ai_max_tokens: int = 4096
    ai_page_types: List[str] = field(default_factory=lambda: list(DEFAULT_AI_PAGE_TYPES))
    ai_render_dpi: int = 150
    max_image_dimension: int = 7000

    record_default_warnings: bool = True
    verbose: bool = True

    def resolve_api_key(self) -> Optional[str]:
        """Return the configured API key or the ANTHROPIC_API_KEY environment value."""
        return self.api_key or os.environ.get("ANTHROPIC_API_KEY")

    def is_ai_page(self, page_type: PageType) -> bool:
        return page_type.value in self.ai_page_types

    @classmethod
    def from_dict(cls, data: dict) -> 'ScanConfig':
        return cls(**{k: v for k, v in (data or {}).items() if k in cls.__dataclass_fields__})

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'ScanConfig':
        """
        Load configuration from a YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            ScanConfig instance
        """
        with open(yaml_path, 'r') as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data)

    @classmethod
    def from_json(cls, json_path: str) -> 'ScanConfig':
        """
        Load configuration from a JSON file.

        Args:
            json_path: Path to JSON configuration file

        Returns:
            ScanConfig instance
        """
        with open(json_path, 'r') as f:
            data = json.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: str) -> 'ScanConfig':
        """Load from YAML or JSON depending on the file extension."""
        if path.lower().endswith(".json"):
            return cls.from_json(path)
        return cls.from_yaml(path)

    def to_dict(self) -> dict:
        data = asdict(self)
        # api_key is never persisted
        data.pop('api_key', None)
        return data

    def to_yaml(self, yaml_path: str) -> None:
        with open(yaml_path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def to_json(self, json_path: str) -> None:
        with open(json_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
