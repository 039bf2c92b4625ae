from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, ClassVar

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from adapters.layout.sankey import ALIGN_JUSTIFY, ALIGN_LEFT, SankeyLayoutConfig
from domain.models import CurveStyle, FrameTarget, Margins, NodeShape
from domain.services.build_flow_diagram import (
    DEFAULT_LINK_OPACITY,
    DEFAULT_NODE_RADIUS,
    DiagramOptions,
)
from domain.services.color_resolver import ColorScheme
from domain.services.frame_adapter import DEFAULT_FRAME_MARGIN

DEFAULT_CONFIG_PATH = Path("config/flow.yaml")


def _split_string_list_value(raw_value: str) -> list[str]:
    raw = raw_value.strip()
    if not raw:
        return []
    if (
        (raw.startswith('"') and raw.endswith('"')) or (raw.startswith("'") and raw.endswith("'"))
    ) and len(raw) >= 2:
        raw = raw[1:-1].strip()
    if raw.startswith("[") and raw.endswith("]"):
        raw = raw[1:-1].strip()
    if not raw:
        return []
    return [
        token for token in (part.strip().strip("'").strip('"') for part in raw.split(",")) if token
    ]


class MarginSettings(BaseModel):
    top: float = Field(default=30.0, ge=0)
    right: float = Field(default=40.0, ge=0)
    bottom: float = Field(default=30.0, ge=0)
    left: float = Field(default=30.0, ge=0)


class LayoutSettings(BaseModel):
    width: float = Field(default=800.0, gt=0)
    height: float = Field(default=600.0, gt=0)
    node_thickness: float = Field(default=15.0, gt=0)
    node_padding: float = Field(default=10.0, ge=0)
    iterations: int = Field(default=6, ge=0)
    align: str = ALIGN_JUSTIFY
    margins: MarginSettings = MarginSettings()

    @field_validator("align", mode="before")
    @classmethod
    def normalize_align(cls, value: object) -> str:
        align = str(value or ALIGN_JUSTIFY).strip().lower()
        if align not in {ALIGN_JUSTIFY, ALIGN_LEFT}:
            msg = f"layout.align must be one of: {ALIGN_JUSTIFY}, {ALIGN_LEFT}"
            raise ValueError(msg)
        return align

    def to_layout_config(self) -> SankeyLayoutConfig:
        return SankeyLayoutConfig(
            width=self.width,
            height=self.height,
            node_thickness=self.node_thickness,
            node_padding=self.node_padding,
            margins=Margins(
                top=self.margins.top,
                right=self.margins.right,
                bottom=self.margins.bottom,
                left=self.margins.left,
            ),
            iterations=self.iterations,
            align=self.align,
        )


class StyleSettings(BaseModel):
    curve_style: CurveStyle = CurveStyle.CURVED
    palette: ColorScheme = ColorScheme.DEFAULT
    custom_colors: Annotated[list[str], NoDecode] = Field(default_factory=list)
    link_color: str | None = None
    node_shape: NodeShape = NodeShape.RECTANGLE
    node_radius: float = Field(default=DEFAULT_NODE_RADIUS, ge=0)
    link_opacity: float = Field(default=DEFAULT_LINK_OPACITY, ge=0, le=1)
    use_gradient: bool = False
    frame_margin: float = Field(default=DEFAULT_FRAME_MARGIN, ge=0)

    @field_validator("curve_style", "palette", "node_shape", mode="before")
    @classmethod
    def normalize_choice(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().lower()
            # Older configs call the curved ribbon "bezier".
            return "curved" if normalized == "bezier" else normalized
        return value

    @field_validator("custom_colors", mode="before")
    @classmethod
    def normalize_colors(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, list):
            normalized: list[str] = []
            for item in value:
                normalized.extend(_split_string_list_value(str(item)))
            return normalized
        return _split_string_list_value(str(value))

    def to_diagram_options(self, frame_target: FrameTarget | None = None) -> DiagramOptions:
        return DiagramOptions(
            curve_style=self.curve_style,
            palette=self.palette,
            custom_colors=tuple(self.custom_colors),
            link_color=self.link_color,
            node_shape=self.node_shape,
            node_radius=self.node_radius,
            link_opacity=self.link_opacity,
            use_gradient=self.use_gradient,
            frame_target=frame_target,
            frame_margin=self.frame_margin,
        )


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FLOW_", env_nested_delimiter="__")

    layout: LayoutSettings = LayoutSettings()
    style: StyleSettings = StyleSettings()

    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("FLOW_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous
