# core/matcher.py
from typing import Iterable, Tuple


class NamespaceMatcher:
    """
    Namespace gate for the event path.
      - ("*",) alone matches everything, including "".
      - "prefix*" matches namespaces starting with "prefix".
      - anything else must match exactly.
    Patterns are frozen at construction so concurrent callers need no locking.
    """

    def __init__(self, patterns: Iterable[str]) -> None:
        self._patterns: Tuple[str, ...] = tuple(patterns)
        self._match_all = self._patterns == ("*",)

    @property
    def patterns(self) -> Tuple[str, ...]:
        return self._patterns

    def should_archive(self, namespace: str) -> bool:
        if self._match_all:
            return True
        for pattern in self._patterns:
            if pattern.endswith("*"):
                if namespace.startswith(pattern[:-1]):
                    return True
            elif namespace == pattern:
                return True
        return False
