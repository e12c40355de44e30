from infrastructure.vision.barcode_lookup import BarcodeLookupService
from infrastructure.vision.claude_vision_client import ClaudeVisionClient
from infrastructure.vision.disc_case_recognizer import DiscCaseRecognizer

__all__ = ["BarcodeLookupService", "ClaudeVisionClient", "DiscCaseRecognizer"]
