"""
Declarative parameter schemas.

Routes declare their parameters as a plain mapping, which this module
normalizes into ``ParameterSpec`` lists:

    {
      "id": "string",                          # single type
      "tags": "array,string",                  # comma separated types
      "limit": ["Number"],                     # list of types (case-insensitive)
      "sort": {
          "dataTypes": ["string"],             # or "dataType"
          "required": False,
          "paramType": "querystring",          # "post" -> body
          "default": "name",                   # value or callable(ctx, spec)
          "dataValues": ["name", "date"],
          "min": 0, "max": 100,                # kept only for number types
          "params": {...},                     # nested schema for object types
          "validate": callable,
          "transform": callable,
          "description": "Sort order",
      },
    }

Names found in the route path (``/users/:id`` or ``/users/{id}``) are always
required, read from the path container and typed ``string`` unless declared.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .errors import SchemaError
from .logging_config import get_logger
from .types import MISSING, TARGETS, DataType, ParameterSpec, ParamSource, normalize_data_types, parse_number

logger = get_logger(__name__)

_PATH_PARAM_RX = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)|\{([A-Za-z_][A-Za-z0-9_]*)\}")

# Properties consumed by the builder itself
_KNOWN_PROPERTIES = frozenset({
    "dataType", "dataTypes", "required", "paramType", "min", "max",
    "default", "dataValues", "validate", "transform", "description", "params",
})

# Route keys that map onto RouteSchema fields
_ROUTE_FIELDS = frozenset({"path", "route", "method", "params", "paramTarget", "description"})

DEFAULT_ROUTE_PROPERTIES = ("description",)


def path_parameters(path: str) -> List[str]:
    """
    Extract the parameter names of a route template.

    Args:
        path: Route template such as ``/users/:id`` or ``/users/{id}/posts``

    Returns:
        Lowercased parameter names in the order they appear
    """
    names = []
    for match in _PATH_PARAM_RX.finditer(path or ""):
        name = (match.group(1) or match.group(2)).lower()
        if name not in names:
            names.append(name)
    return names


def _to_bound(name: str, prop: str, value: Any) -> float:
    number = parse_number(value)
    if number is None:
        raise SchemaError(f"Invalid `{prop}` for param `{name}`: `{value!r}` is not a number")
    return number


def _normalize_definition(name: str, data: Any) -> Dict[str, Any]:
    # Shorthand forms: "string", "string,number", ["string", "number"]
    if isinstance(data, (str, list, tuple)):
        return {"dataTypes": data}
    if isinstance(data, ParameterSpec):
        return {"spec": data}
    if not isinstance(data, Mapping):
        raise SchemaError(f"Invalid definition for param `{name}`: {data!r}")

    data = dict(data)
    if "dataType" in data:
        data["dataTypes"] = data.pop("dataType")
    return data


def build_spec(
    name: str,
    data: Any,
    from_path: bool = False,
    param_properties: Optional[Iterable[str]] = None,
) -> ParameterSpec:
    """
    Build a single ``ParameterSpec`` from a declarative definition.

    Args:
        name: Parameter name
        data: Shorthand type declaration, definition mapping or ParameterSpec
        from_path: Whether the parameter is part of the route path
        param_properties: Extra documentation properties to keep in ``extras``

    Returns:
        Normalized parameter spec

    Raises:
        SchemaError: If the definition is malformed
    """
    data = _normalize_definition(name, data)
    if "spec" in data:
        return data["spec"]

    data_types = normalize_data_types(data.get("dataTypes"))

    if from_path:
        source = ParamSource.PATH
    elif data.get("paramType") == "post":
        source = ParamSource.BODY
    else:
        source = ParamSource.QUERY

    kwargs: Dict[str, Any] = {
        "name": name,
        "data_types": data_types,
        "required": True if from_path else bool(data.get("required", False)),
        "source": source,
        "default": data.get("default", MISSING),
        "validate": data.get("validate"),
        "transform": data.get("transform"),
        "description": data.get("description"),
    }

    if data.get("dataValues") is not None:
        kwargs["data_values"] = tuple(data["dataValues"])

    # Bounds only make sense for numbers
    if DataType.NUMBER in data_types:
        if data.get("min") is not None:
            kwargs["min"] = _to_bound(name, "min", data["min"])
        if data.get("max") is not None:
            kwargs["max"] = _to_bound(name, "max", data["max"])

    # Sub-schemas only make sense for objects
    if DataType.OBJECT in data_types and data.get("params"):
        kwargs["params"] = tuple(build_specs(data["params"], param_properties=param_properties))

    extras = {}
    for prop in param_properties or ():
        if prop in data and prop not in _KNOWN_PROPERTIES:
            extras[prop] = data[prop]
    kwargs["extras"] = extras

    return ParameterSpec(**kwargs)


def build_specs(
    params: Optional[Mapping[str, Any]],
    path_params: Sequence[str] = (),
    global_params: Optional[Mapping[str, Any]] = None,
    param_properties: Optional[Iterable[str]] = None,
) -> List[ParameterSpec]:
    """
    Normalize a declarative parameter mapping into specs.

    Args:
        params: Mapping of parameter name to definition
        path_params: Names taken from the route path; always required
        global_params: Definitions shared by every route, used for names the
            route does not declare itself
        param_properties: Extra documentation properties to keep

    Returns:
        Parameter specs in declaration order
    """
    definitions: Dict[str, Any] = dict(params or {})

    for name, data in (global_params or {}).items():
        definitions.setdefault(name, data)

    for name in path_params:
        definitions.setdefault(name, {"dataTypes": [DataType.STRING]})

    specs = [
        build_spec(name, data, from_path=name in path_params, param_properties=param_properties)
        for name, data in definitions.items()
    ]
    logger.debug(f"[schema] built {len(specs)} param specs: {', '.join(spec.name for spec in specs)}")
    return specs


@dataclass
class RouteSchema:
    """Parameter schema of one route."""
    path: str
    method: str = "GET"
    # None means the route has not opted in to validation
    parameters: Optional[List[ParameterSpec]] = None
    param_target: Optional[str] = None
    description: Optional[str] = None
    # Extra route-level documentation copied from the route definition
    extras: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.method = self.method.upper()
        if self.param_target is not None and self.param_target not in TARGETS:
            raise SchemaError(
                f"Invalid `paramTarget` option, valid options are `{','.join(TARGETS)}`. "
                f"received `{self.param_target}`"
            )

    @classmethod
    def from_definition(
        cls,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        method: str = "GET",
        param_target: Optional[str] = None,
        description: Optional[str] = None,
        global_params: Optional[Mapping[str, Any]] = None,
        param_properties: Optional[Iterable[str]] = None,
        load_all: bool = False,
        route_spec: Optional[Mapping[str, Any]] = None,
        route_properties: Optional[Iterable[str]] = DEFAULT_ROUTE_PROPERTIES,
    ) -> "RouteSchema":
        """
        Build a route schema from a declarative parameter mapping.

        A route opts in by declaring ``params`` (an empty mapping still opts
        in and means "accept no parameters"). With ``load_all`` routes without
        ``params`` are validated too, against their path and global params.

        ``route_properties`` names keys of ``route_spec`` (the host's own
        route definition) to keep for documentation. ``description`` fills the
        description unless one is passed explicitly; anything else lands in
        ``extras``.
        """
        parameters = None
        if params is not None or load_all:
            parameters = build_specs(
                params,
                path_params=path_parameters(path),
                global_params=global_params,
                param_properties=param_properties,
            )
            if params is None and not parameters:
                parameters = None

        extras = {}
        for prop in route_properties or ():
            if route_spec is None or prop not in route_spec:
                continue
            if prop == "description":
                if description is None:
                    description = route_spec[prop]
            elif prop not in _ROUTE_FIELDS:
                extras[prop] = route_spec[prop]

        return cls(
            path=path,
            method=method,
            parameters=parameters,
            param_target=param_target,
            description=description,
            extras=extras,
        )

    def param_map(self) -> Dict[str, ParameterSpec]:
        return {spec.name: spec for spec in self.parameters or ()}

    def defaults(self) -> Dict[str, Any]:
        """Declared defaults; static values are deep-copied so callers cannot alter the schema."""
        defaults = {}
        for spec in self.parameters or ():
            if not spec.has_default:
                continue
            defaults[spec.name] = spec.default if callable(spec.default) else copy.deepcopy(spec.default)
        return defaults

    def merged_params(self, *overrides: Mapping[str, Any]) -> Dict[str, Any]:
        """Parameter documentation merged with caller-supplied entries, later mappings winning."""
        merged: Dict[str, Any] = {name: spec.to_dict() for name, spec in self.param_map().items()}
        for override in overrides:
            merged.update(override)
        return merged

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "route": self.path,
            "method": self.method,
            "parameters": None if self.parameters is None else [spec.to_dict() for spec in self.parameters],
        }
        if self.param_target is not None:
            data["paramTarget"] = self.param_target
        if self.description is not None:
            data["description"] = self.description
        data.update(self.extras)
        return data
