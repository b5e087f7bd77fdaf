"""Obstacle clustering, tracking and Kalman-filter motion prediction."""

__version__ = "0.1.0"

__all__ = [
    "geometry",
    "kalman",
    "dynamic_predictor",
    "fov_predictor",
    "marker_cloud",
    "cluster",
]