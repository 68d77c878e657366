"""Vision package exports."""

from .engine import AnalysisResult, PostureEngine
from .keypoints import KeyPoint, PoseKeypoints

__all__ = ["PostureEngine", "AnalysisResult", "KeyPoint", "PoseKeypoints"]
