from scrub_db.anonymization.anonymizer import Anonymizer
from scrub_db.anonymization.base import BaseAnonymizer
from scrub_db.config.models import RunConfig


class AnonymizerFactory:
    """Creates a fresh anonymizer session for one dump."""

    @classmethod
    def create(cls, config: RunConfig) -> BaseAnonymizer:
        return Anonymizer(preserve_relationships=config.preserve_relationships)
