"""
Command groups emitted by the evaluator.

One group per command line, holding its letter/value words in source order.
No modal-group or compatibility checking is done here.
"""

from dataclasses import dataclass, field


def _format_number(value: float) -> str:
    text = f"{value:.10g}"
    if "." in text and "e" not in text:
        text = text.rstrip("0").rstrip(".")
    return text


@dataclass
class CommandGroup:
    """Ordered letter/value words of one line; a letter may repeat"""

    words: list[tuple[str, float]] = field(default_factory=list)

    def __str__(self):
        return " ".join(f"{letter}{_format_number(value)}" for letter, value in self.words)

    def __len__(self):
        return len(self.words)

    def __iter__(self):
        return iter(self.words)

    def get(self, letter: str, default: float | None = None) -> float | None:
        """First value given for `letter` on this line"""
        letter = letter.upper()
        for word_letter, value in self.words:
            if word_letter == letter:
                return value
        return default

    def get_all(self, letter: str) -> list[float]:
        letter = letter.upper()
        return [value for word_letter, value in self.words if word_letter == letter]
