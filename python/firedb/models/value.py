"""
firedb/models/value.py

The closed set of values a Realtime Database response can decode into:
  - Dictionary (a JSON object)
  - Number (a JSON integer)
  - String
  - Bool
  - Null (no data at the path)

Equality is value-based for every variant except Dictionary. Two Dictionary
values never compare equal, not even a value with itself: nested JSON of
arbitrary shape has no equality law we are willing to promise, so callers
must inspect `.val` instead.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Union

from pydantic import BaseModel, ConfigDict, StrictBool, StrictInt, StrictStr


class Value(BaseModel):
    """Base class of the decoded value union. Use Value.from_json() to classify raw JSON."""

    model_config = ConfigDict(frozen=True)

    @staticmethod
    def from_json(raw: Any) -> "ValueType":
        """Classify an already-parsed JSON document.

        Rules are tried in order and the first match wins:
          1) object  -> Dictionary
          2) integer -> Number (JSON true/false are not integers here, even though
             Python's bool subclasses int)
          3) boolean -> Bool
          4) string  -> String
          5) anything else (null, floats, arrays) -> Null

        Args:
            raw (Any): Output of json.loads().

        Returns:
            ValueType: The classified value.
        """
        if isinstance(raw, dict):
            return Dictionary(val=raw)
        if isinstance(raw, int) and not isinstance(raw, bool):
            return Number(val=raw)
        if isinstance(raw, bool):
            return Bool(val=raw)
        if isinstance(raw, str):
            return String(val=raw)
        return NULL

    def to_python(self) -> Any:
        """Return the plain Python payload (None for Null)."""
        return getattr(self, "val", None)


class Dictionary(Value):
    kind: Literal["dictionary"] = "dictionary"
    val: Dict[str, Any]

    def __eq__(self, other: object) -> bool:
        return False

    def __ne__(self, other: object) -> bool:
        return True

    def __hash__(self) -> int:
        return id(self)

    def __getitem__(self, key: str) -> Any:
        return self.val[key]

    def __contains__(self, key: object) -> bool:
        return key in self.val


class Number(Value):
    kind: Literal["number"] = "number"
    val: StrictInt


class String(Value):
    kind: Literal["string"] = "string"
    val: StrictStr


class Bool(Value):
    kind: Literal["bool"] = "bool"
    val: StrictBool


class Null(Value):
    kind: Literal["null"] = "null"


NULL = Null()

ValueType = Union[Dictionary, Number, String, Bool, Null]

__all__ = ["Value", "ValueType", "Dictionary", "Number", "String", "Bool", "Null", "NULL"]
