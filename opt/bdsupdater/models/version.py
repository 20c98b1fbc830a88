"""
Server version model.

Bedrock dedicated server builds are identified by up to four dotted
numeric components (major.minor.patch.revision). Missing trailing
components compare as zero, so 1.20 and 1.20.0.0 are the same build.
"""

import functools
from typing import Iterable, Tuple

MAX_COMPONENTS = 4


@functools.total_ordering
class Version:
    """An immutable, totally ordered server version."""

    __slots__ = ('_parts',)

    def __init__(self, parts: Iterable[int]):
        parts = tuple(int(p) for p in parts)
        if not parts or len(parts) > MAX_COMPONENTS:
            raise ValueError(f"Version must have 1 to {MAX_COMPONENTS} components, got {len(parts)}")
        if any(p < 0 for p in parts):
            raise ValueError(f"Version components must be non-negative: {parts}")
        self._parts = parts

    @classmethod
    def parse(cls, text: str) -> 'Version':
        """
        Parse a dotted version string such as '1.20.1.02'.

        Args:
            text: Version string

        Returns:
            Version: The parsed version

        Raises:
            ValueError: If the string is empty or has invalid components
        """
        if text is None or not text.strip():
            raise ValueError("Empty version string")
        parts = []
        for component in text.strip().split('.'):
            if not component.isdigit():
                raise ValueError(f"Invalid version component {component!r} in {text!r}")
            parts.append(int(component))
        return cls(parts)

    @property
    def parts(self) -> Tuple[int, ...]:
        return self._parts

    def _padded(self) -> Tuple[int, ...]:
        return self._parts + (0,) * (MAX_COMPONENTS - len(self._parts))

    def __eq__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self._padded() == other._padded()

    def __lt__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self._padded() < other._padded()

    def __hash__(self):
        return hash(self._padded())

    def __str__(self):
        return '.'.join(str(p) for p in self._parts)

    def __repr__(self):
        return f"Version('{self}')"
