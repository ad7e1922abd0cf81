"""Configuration validation models using Pydantic."""
from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator

from ..standards.layouts import CUTS_LAYOUT, SALES_LAYOUT, FieldRule, RecordLayout
from ..standards.schemas import DETAIL_FIELDS


class FieldOverride(BaseModel):
    """Override for how one field is located in the sheet."""

    keywords: Optional[List[Union[str, List[str]]]] = Field(
        None,
        description="Keyword tiers; a flat list of strings is treated as a single tier",
    )
    exact: Optional[List[str]] = Field(None, description="Header names matched exactly")
    fallback: Optional[int] = Field(None, ge=0, description="Positional fallback column (0-based)")

    def tiers(self) -> Optional[Tuple[Tuple[str, ...], ...]]:
        if self.keywords is None:
            return None
        if all(isinstance(k, str) for k in self.keywords):
            return (tuple(k.lower() for k in self.keywords),)
        tiers = []
        for tier in self.keywords:
            items = [tier] if isinstance(tier, str) else tier
            tiers.append(tuple(k.lower() for k in items))
        return tuple(tiers)


class LayoutOverride(BaseModel):
    """Per-layout overrides for the header locator and column resolver."""

    header_scan_rows: Optional[int] = Field(None, ge=1, description="Rows scanned for the header")
    min_keyword_matches: Optional[int] = Field(None, ge=1, description="Keyword hits needed for a header")
    header_keywords: Optional[List[str]] = Field(None, min_length=1)
    columns: Dict[str, FieldOverride] = Field(default_factory=dict)


class IngestionConfig(BaseModel):
    sales: LayoutOverride = Field(default_factory=LayoutOverride)
    cuts: LayoutOverride = Field(default_factory=LayoutOverride)

    @field_validator("sales")
    @classmethod
    def validate_sales_fields(cls, v: LayoutOverride) -> LayoutOverride:
        _check_field_names(v, SALES_LAYOUT)
        return v

    @field_validator("cuts")
    @classmethod
    def validate_cut_fields(cls, v: LayoutOverride) -> LayoutOverride:
        _check_field_names(v, CUTS_LAYOUT)
        return v


def _check_field_names(override: LayoutOverride, layout: RecordLayout) -> None:
    unknown = sorted(set(override.columns) - set(layout.field_names))
    if unknown:
        raise ValueError(f"Unknown {layout.name} fields in config: {unknown}")


class PathsConfig(BaseModel):
    logs_dir: str = "logs"
    output: str = "output/giro_report.xlsx"


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    file_name: str = "giro.log"


class FormattingConfig(BaseModel):
    header_fill: str = "1F4E78"
    header_font_color: str = "FFFFFF"
    precision: int = Field(2, ge=0, le=6)
    table_style: str = "TableStyleMedium2"
    max_column_width: int = Field(60, ge=8)


class ReportConfig(BaseModel):
    metric: Literal["total_value", "quantity"] = "total_value"
    top_n: Optional[int] = Field(None, ge=1, description="Keep only the top N buckets per sheet")
    sort_key: str = "revenue"
    descending: bool = True
    formatting: FormattingConfig = Field(default_factory=FormattingConfig)

    @field_validator("sort_key")
    @classmethod
    def validate_sort_key(cls, v: str) -> str:
        if v not in DETAIL_FIELDS:
            raise ValueError(f"sort_key must be one of {DETAIL_FIELDS}")
        return v


class GiroConfig(BaseModel):
    """Complete giro configuration."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)


def load_and_validate_config(config_dict: Optional[dict]) -> GiroConfig:
    """
    Validate a raw configuration mapping (as loaded from YAML).

    Args:
        config_dict: Parsed YAML mapping; ``None`` or ``{}`` yields defaults

    Returns:
        Validated GiroConfig object

    Raises:
        ValidationError: If configuration is invalid
    """
    return GiroConfig(**(config_dict or {}))


def _apply_override(layout: RecordLayout, override: LayoutOverride) -> RecordLayout:
    rules: List[FieldRule] = []
    for rule in layout.fields:
        fo = override.columns.get(rule.name)
        if fo is None:
            rules.append(rule)
            continue
        changes = {}
        tiers = fo.tiers()
        if tiers is not None:
            changes["keywords"] = tiers
        if fo.exact is not None:
            changes["exact"] = tuple(e.lower() for e in fo.exact)
        if "fallback" in fo.model_fields_set:
            changes["fallback"] = fo.fallback
        rules.append(replace(rule, **changes))

    changes = {"fields": tuple(rules)}
    if override.header_scan_rows is not None:
        changes["header_scan_rows"] = override.header_scan_rows
    if override.min_keyword_matches is not None:
        changes["min_keyword_matches"] = override.min_keyword_matches
    if override.header_keywords is not None:
        changes["header_keywords"] = tuple(k.lower() for k in override.header_keywords)
    return replace(layout, **changes)


def build_layouts(config: GiroConfig) -> Tuple[RecordLayout, RecordLayout]:
    """Return the effective (sales, cuts) layouts for ``config``.

    The built-in layouts are never modified; overrides produce new copies.
    """
    return (
        _apply_override(SALES_LAYOUT, config.ingestion.sales),
        _apply_override(CUTS_LAYOUT, config.ingestion.cuts),
    )
