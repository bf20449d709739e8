from scrub_db.anonymization.models import AnonymizationMethod
from scrub_db.config.loader import normalize_rule_key
from scrub_db.config.models import RunConfig
from scrub_db.detection.classifier import PIIClassifier


class MethodResolver:
    """Picks the method for a column value.

    Precedence: explicit rule (most qualified key first), then the
    classifier's default method when auto-detection is on, then Skip.
    """

    def __init__(self, config: RunConfig, classifier: PIIClassifier | None = None) -> None:
        self._config = config
        self._classifier = classifier if classifier is not None else PIIClassifier()

    def resolve(self, table: str, column: str, value: str | None = None) -> AnonymizationMethod:
        rule = self.rule_for(table, column)
        if rule is not None:
            return rule
        if not self._config.auto_detect:
            return AnonymizationMethod.SKIP
        return self._classifier.classify(column, value).category.default_method

    def rule_for(self, table: str, column: str) -> AnonymizationMethod | None:
        rules = self._config.custom_rules
        if not rules:
            return None
        column_key = normalize_rule_key(column)
        parts = [p for p in table.lower().split(".") if p]
        for i in range(len(parts)):
            method = rules.get(".".join([*parts[i:], column_key]))
            if method is not None:
                return method
        return rules.get(column_key)
