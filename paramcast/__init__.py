"""
paramcast

Declarative validation and type coercion for HTTP-style request parameters.
"""

from .errors import ErrorKind, ParameterError, SchemaError
from .request_validation import RequestParams, RequestValidator, RequestValidatorOptions
from .schema import RouteSchema, build_spec, build_specs
from .types import DataType, ParameterSpec, ParamSource
from .validator import check_param, validate_param, validate_params

__version__ = "0.1.0"
__all__ = [
    "DataType",
    "ErrorKind",
    "ParamSource",
    "ParameterError",
    "ParameterSpec",
    "RequestParams",
    "RequestValidator",
    "RequestValidatorOptions",
    "RouteSchema",
    "SchemaError",
    "build_spec",
    "build_specs",
    "check_param",
    "validate_param",
    "validate_params",
]
