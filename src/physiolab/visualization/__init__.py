"""
Visualization Module

Adapters that convert engine results into heatmap samples, depth
profiles and RGBA slice buffers for the rendering layer.
"""

from .adapters import (
    DepthSample,
    HeatmapSample,
    TemperatureSample,
    depth_profile_samples,
    grayscale_to_rgba,
    grid_to_heatmap_samples,
    temperature_samples,
)

__all__ = [
    "DepthSample",
    "HeatmapSample",
    "TemperatureSample",
    "depth_profile_samples",
    "grayscale_to_rgba",
    "grid_to_heatmap_samples",
    "temperature_samples",
]
