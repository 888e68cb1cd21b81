"""CMS detection for arbitrary sites."""

from .service import CMSDetector, DetectionResult

__all__ = ["CMSDetector", "DetectionResult"]
