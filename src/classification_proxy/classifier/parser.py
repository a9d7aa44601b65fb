"""
Positional label parsing.

Line i of the provider output is the label for item i. Only an exact
``BLOCK`` (after trimming, case-insensitive) blocks; anything else,
including blank or garbled lines, is ALLOW.
"""

from dataclasses import dataclass, field

from classification_proxy.models.enums import Label


@dataclass
class ParsedLabels:
    labels: list[Label] = field(default_factory=list)
    shortfall: int = 0
    surplus: int = 0

    @property
    def mismatched(self) -> bool:
        return self.shortfall > 0 or self.surplus > 0


def parse_label(line: str) -> Label:
    return Label.BLOCK if line.strip().upper() == Label.BLOCK.value else Label.ALLOW


def parse_labels(text: str, expected: int) -> ParsedLabels:
    """
    Map provider output onto ``expected`` positions.

    Missing trailing lines are backfilled ALLOW; extra lines are dropped.
    Both are reported on the result so the caller can log them.

    >>> parse_labels("BLOCK\\n allow ", 3).labels
    [<Label.BLOCK: 'BLOCK'>, <Label.ALLOW: 'ALLOW'>, <Label.ALLOW: 'ALLOW'>]
    """
    lines = text.strip().splitlines() if text.strip() else []
    labels = [parse_label(line) for line in lines[:expected]]
    shortfall = expected - len(labels)
    labels.extend([Label.ALLOW] * shortfall)
    return ParsedLabels(
        labels=labels,
        shortfall=shortfall,
        surplus=max(0, len(lines) - expected),
    )
