"""
Batch classification over the completion provider.

- classifier.py: Classifier (batch prompt, positional parse, fail-open)
- circuit_breaker.py: consecutive-failure breaker with half-open probe
- parser.py: positional label parsing
"""

from classification_proxy.classifier.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from classification_proxy.classifier.classifier import Classifier, error_code_for
from classification_proxy.classifier.parser import ParsedLabels, parse_label, parse_labels

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "Classifier",
    "ParsedLabels",
    "error_code_for",
    "parse_label",
    "parse_labels",
]
