"""Caller intent extraction."""

from frontline.intake.extractor import ExtractionResult, IntentExtraction, IntentExtractor

__all__ = ["ExtractionResult", "IntentExtraction", "IntentExtractor"]
