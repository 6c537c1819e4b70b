"""
Helper modules for service layer.

These helpers wrap the external providers:
- Google Cloud Vision label/object detection
- AWS Rekognition label detection
- OpenAI summarization
- Label categorization and image loading
"""

from itemscan.services.helpers.google_vision_helper import GoogleVisionHelper, GoogleVisionUnavailable
from itemscan.services.helpers.rekognition_helper import RekognitionHelper, RekognitionUnavailable
from itemscan.services.helpers.summarizer_helper import OpenAISummarizer, SummarizerUnavailable
from itemscan.services.helpers.categories import categorize_item

__all__ = [
    "GoogleVisionHelper",
    "GoogleVisionUnavailable",
    "RekognitionHelper",
    "RekognitionUnavailable",
    "OpenAISummarizer",
    "SummarizerUnavailable",
    "categorize_item",
]
