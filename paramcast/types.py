"""
Parameter specification model.

A ``ParameterSpec`` is the normalized, declarative contract for one named
request parameter: which data types it accepts, whether it is required, its
default, an optional allow-list of final values, numeric bounds and (for
object parameters) a nested list of child specs.

Specs are built once per route and treated as read-only afterwards, so a
single instance can be shared by any number of concurrent validations.
"""

from __future__ import annotations

import inspect
import math
import re
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union

from .errors import SchemaError


class _Missing:
    """Sentinel type for "no default declared"."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


class DataType:
    """Accepted primitive data type names."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"

    ALL = frozenset({STRING, NUMBER, BOOLEAN, DATE, ARRAY, OBJECT})

    # Coercion order; ambiguous raw values resolve to the first match
    PRIORITY = (ARRAY, OBJECT, DATE, BOOLEAN, NUMBER, STRING)


class ParamSource:
    """Parameter source categories and the containers they map to."""
    PATH = "path"
    QUERY = "query"
    BODY = "body"

    ALL = (PATH, QUERY, BODY)

    # Declarative ``paramType`` names used by route schemas
    PARAM_TYPES = {
        "path": PATH,
        "querystring": QUERY,
        "post": BODY,
    }

    # Container attribute on a request for each source
    CONTAINERS = {
        PATH: "params",
        QUERY: "query",
        BODY: "body",
    }


# Valid container targets for parameter extraction
TARGETS = ("params", "query", "body")


def get_type(value: Any) -> str:
    """
    Get the data type tag of a raw value.

    Args:
        value: Any value

    Returns:
        One of the ``DataType`` names, ``"null"`` for ``None``, or the
        lowercased Python type name for anything else
    """
    if value is None:
        return "null"
    # bool is a subclass of int and must be checked first
    if isinstance(value, bool):
        return DataType.BOOLEAN
    if isinstance(value, (int, float)):
        return DataType.NUMBER
    if isinstance(value, str):
        return DataType.STRING
    if isinstance(value, date):
        return DataType.DATE
    if isinstance(value, (list, tuple)):
        return DataType.ARRAY
    if isinstance(value, dict):
        return DataType.OBJECT
    return type(value).__name__.lower()


def is_truthy(value: Any) -> bool:
    """Wire-level truthiness: empty strings and zero are falsy, containers never are."""
    if value is None or value is False:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, float):
        return value != 0 and not math.isnan(value)
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value != ""
    return True


_NUMBER_RX = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*$", re.ASCII)


def parse_number(value: Any) -> Optional[Union[int, float]]:
    """
    Parse a number or numeric string losslessly.

    Integral literals without a fraction or exponent become ``int``; other
    literals become ``float``. Booleans, empty strings, NaN and infinities are
    not numbers.

    Returns:
        The parsed number, or None if the value is not numeric
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if not isinstance(value, str):
        return None

    match = _NUMBER_RX.match(value)
    if not match:
        return None
    text = value.strip()
    if "." not in text and match.group(2) is None:
        try:
            return int(text)
        except ValueError:
            # Beyond the interpreter's int/str conversion limit
            return None
    number = float(text)
    return number if math.isfinite(number) else None


def normalize_data_types(data_types: Any) -> Tuple[str, ...]:
    """
    Normalize a data type declaration.

    Accepts a single name, a comma-separated string or an iterable of names.
    Names are stripped and lowercased, duplicates removed and declared order
    preserved.

    Raises:
        SchemaError: If no type is declared or a name is unknown
    """
    if data_types is None:
        raise SchemaError("Parameter must declare at least one data type")
    if isinstance(data_types, str):
        data_types = data_types.split(",")

    normalized = []
    for name in data_types:
        if not name:
            continue
        if not isinstance(name, str):
            raise SchemaError(f"Invalid data type `{name!r}`")
        name = name.strip().lower()
        if name not in DataType.ALL:
            raise SchemaError(
                f"Unknown data type `{name}`, valid types are "
                f"`{'|'.join(DataType.PRIORITY)}`"
            )
        if name not in normalized:
            normalized.append(name)

    if not normalized:
        raise SchemaError("Parameter must declare at least one data type")
    return tuple(normalized)


def _positional_arity(func: Callable) -> Optional[int]:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return None
    count = 0
    for param in signature.parameters.values():
        if param.kind is param.VAR_POSITIONAL:
            return None
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            count += 1
    return count


@dataclass(frozen=True, eq=False)
class ParameterSpec:
    """Declarative contract for one named input parameter."""
    name: str
    data_types: Tuple[str, ...] = (DataType.STRING,)
    required: bool = False
    default: Any = MISSING
    data_values: Optional[Tuple[Any, ...]] = None
    min: Optional[float] = None
    max: Optional[float] = None
    params: Optional[Tuple["ParameterSpec", ...]] = None
    validate: Optional[Callable[[Any, Any, "ParameterSpec"], Any]] = None
    transform: Optional[Callable[[Any, Any, "ParameterSpec"], Any]] = None
    source: str = ParamSource.QUERY
    description: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "data_types", normalize_data_types(self.data_types))
        if self.data_values is not None:
            object.__setattr__(self, "data_values", tuple(self.data_values))
        if self.params is not None:
            object.__setattr__(self, "params", tuple(self.params))
        if self.source not in ParamSource.ALL:
            raise SchemaError(
                f"Invalid source `{self.source}` for param `{self.name}`, "
                f"valid sources are `{','.join(ParamSource.ALL)}`"
            )

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    def accepts(self, data_type: str) -> bool:
        return data_type in self.data_types

    def resolve_default(self, context: Any = None) -> Any:
        """
        Resolve the declared default.

        Callable defaults are invoked with ``(context, spec)``, or with no
        arguments when they take none.
        """
        if not callable(self.default):
            return self.default
        if _positional_arity(self.default) == 0:
            return self.default()
        return self.default(context, self)

    def element_spec(self) -> "ParameterSpec":
        """Spec applied to each element of a typed array: no array type, bounds, defaults or callbacks."""
        return replace(
            self,
            data_types=tuple(t for t in self.data_types if t != DataType.ARRAY),
            required=False,
            default=MISSING,
            min=None,
            max=None,
            validate=None,
            transform=None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Documentation-friendly representation of the spec."""
        data: Dict[str, Any] = {
            "name": self.name,
            "required": self.required,
            "paramType": self.source,
            "dataTypes": list(self.data_types),
        }
        if self.description is not None:
            data["description"] = self.description
        if self.has_default and not callable(self.default):
            data["default"] = self.default
        if self.data_values is not None:
            data["dataValues"] = list(self.data_values)
        if self.min is not None:
            data["min"] = self.min
        if self.max is not None:
            data["max"] = self.max
        if self.params is not None:
            data["params"] = [child.to_dict() for child in self.params]
        data.update(self.extras)
        return data


def spec_names(specs: Iterable[ParameterSpec]) -> Tuple[str, ...]:
    return tuple(spec.name for spec in specs)
