"""jq based selector deciding whether an object is handled at all."""

from __future__ import annotations

from typing import Any

import jq

from .exceptions import SelectorError


class SelectorQuery:
    """A compiled jq expression that must yield a boolean for every object.

    An empty query matches everything.
    """

    def __init__(self, query: str) -> None:
        self.query = query.strip()
        self._program: Any = None
        if self.query:
            try:
                self._program = jq.compile(self.query)
            except ValueError as exc:
                raise SelectorError(f"invalid selector query '{self.query}': {exc}") from exc

    def __bool__(self) -> bool:
        return bool(self.query)

    def matches(self, obj: dict[str, Any]) -> bool:
        """Evaluate the query against the object's JSON representation.

        Raises:
            SelectorError: If evaluation fails or the result is not a boolean
        """
        if self._program is None:
            return True

        try:
            results = self._program.input_value(obj).all()
        except ValueError as exc:
            raise SelectorError(f"error evaluating selector query '{self.query}': {exc}") from exc

        if len(results) != 1 or not isinstance(results[0], bool):
            raise SelectorError(
                f"selector query '{self.query}' must produce a single boolean, got {results!r}"
            )
        return results[0]

