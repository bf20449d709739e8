from scrub_db.anonymization.anonymizer import Anonymizer
from scrub_db.anonymization.base import BaseAnonymizer
from scrub_db.anonymization.cache import ConsistencyCache
from scrub_db.anonymization.models import AnonymizationMethod

__all__ = ["AnonymizationMethod", "Anonymizer", "BaseAnonymizer", "ConsistencyCache"]
