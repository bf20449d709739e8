from scrub_db.detection.classifier import PIIClassifier
from scrub_db.detection.dialect import DialectDetector, default_output_filename
from scrub_db.detection.models import ClassificationResult, DatabaseType, PIICategory

__all__ = [
    "ClassificationResult",
    "DatabaseType",
    "DialectDetector",
    "PIICategory",
    "PIIClassifier",
    "default_output_filename",
]
