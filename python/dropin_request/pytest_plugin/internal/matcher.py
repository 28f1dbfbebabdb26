from re import Pattern
from typing import Any


class InternalMatcher:
    """Compare a value with a literal, a compiled regex (full match) or a dirty-equals matcher."""

    def __init__(self, matcher: Any) -> None:
        self.matcher = matcher

    def matches(self, value: Any) -> bool:
        if isinstance(self.matcher, Pattern):
            return isinstance(value, str) and self.matcher.fullmatch(value) is not None
        return bool(self.matcher == value)

    def __repr__(self) -> str:
        if isinstance(self.matcher, Pattern):
            return f"{self.matcher.pattern} (regex)"
        return repr(self.matcher)
