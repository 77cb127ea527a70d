"""
Request-level parameter validation.

``RequestValidator`` runs the engine once per declared parameter of a route
against the request's containers, aggregates the failures and tidies the
containers afterwards:

- each parameter is read from the route's ``param_target`` if set, otherwise
  from the path container when it already holds the key, otherwise from the
  container of the parameter's declared source
- validated query/body values are copied into the path container
  (``map_params``)
- keys no parameter declares are removed from the filtered containers unless
  whitelisted (``filter_params``)

It works on plain dictionaries and has no knowledge of any HTTP framework.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .config_manager import get_config_manager
from .errors import ParameterError, SchemaError
from .logging_config import get_logger, log_with_context
from .metrics import get_metrics_collector, time_operation
from .report import ValidationReport, log_report
from .schema import RouteSchema
from .types import TARGETS, ParamSource, get_type
from .validator import DEFAULT_MAX_DEPTH, check_param

logger = get_logger(__name__)

# Whitelisted automatically when filtering with JSONP enabled
JSONP_PARAMS = ("callback", "jsonp")


def validate_target(target: str) -> str:
    """
    Verify that a parameter target names one of the request containers.

    Raises:
        SchemaError: If the target is unknown
    """
    if target not in TARGETS:
        raise SchemaError(
            f"Invalid `paramTarget` option, valid options are `{','.join(TARGETS)}`. "
            f"received `{target}`"
        )
    return target


def normalize_param_filter(value: Union[bool, str, List[str], None]) -> List[str]:
    """
    Normalize the ``filter_params`` option.

    Args:
        value: False/None for no filtering, a target name, a list of targets,
            or True for every target

    Returns:
        List of container targets to filter (empty for none)
    """
    if not value:
        return []
    if value is True:
        return list(TARGETS)
    if isinstance(value, str):
        return [validate_target(value)]
    return [validate_target(target) for target in value]


@dataclass
class RequestParams:
    """The three parameter containers of a request."""
    params: Dict[str, Any] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    body: Any = field(default_factory=dict)

    def container(self, target: str) -> Any:
        return getattr(self, validate_target(target))


@dataclass
class RequestValidatorOptions:
    """Options controlling how request containers are handled."""
    map_params: bool = True
    filter_params: Union[bool, str, List[str]] = True
    jsonp: bool = True
    param_whitelist: List[str] = field(default_factory=list)
    param_target: Optional[str] = None
    # Nesting ceiling handed to the engine
    max_depth: int = DEFAULT_MAX_DEPTH

    def __post_init__(self):
        if self.max_depth < 0:
            raise SchemaError(f"The `max_depth` option must not be negative, received `{self.max_depth}`")
        if not isinstance(self.param_whitelist, (list, tuple)):
            raise SchemaError("The `param_whitelist` option must be a list.")
        self.param_whitelist = list(self.param_whitelist)
        self.filter_params = normalize_param_filter(self.filter_params)
        if self.param_target is not None:
            validate_target(self.param_target)
        if self.jsonp and self.filter_params:
            for name in JSONP_PARAMS:
                if name not in self.param_whitelist:
                    self.param_whitelist.append(name)

    @classmethod
    def from_config(cls, **overrides) -> "RequestValidatorOptions":
        """Build options from the global configuration, with explicit overrides."""
        manager = get_config_manager()
        options = manager.get_request_options()
        options["max_depth"] = manager.get_max_depth()
        options.update(overrides)
        return cls(**options)


class RequestValidator:
    """Validates request containers against route schemas."""

    def __init__(self, options: Optional[RequestValidatorOptions] = None):
        self.options = options or RequestValidatorOptions.from_config()
        self.metrics = get_metrics_collector()

    def _select_target(self, route: RouteSchema, request: RequestParams, spec) -> str:
        target = route.param_target or self.options.param_target
        if target:
            return target
        if spec.name in request.params:
            return "params"
        return ParamSource.CONTAINERS[spec.source]

    def _filter(self, request: RequestParams, allowed: List[str]) -> None:
        whitelist = self.options.param_whitelist
        for target in self.options.filter_params:
            container = request.container(target)
            # Bodies are not always parsed into a mapping
            if get_type(container) != "object":
                continue
            for name in list(container):
                if name in whitelist or name in allowed:
                    continue
                del container[name]

    def validate(self, route: RouteSchema, request: RequestParams, context: Any = None) -> ValidationReport:
        """
        Validate a request against a route schema.

        Containers are coerced in place. The report carries every error;
        callers typically surface ``report.first_error``.

        Args:
            route: Route schema
            request: Request containers
            context: Opaque context passed to default/validate/transform callbacks

        Returns:
            ValidationReport
        """
        report = ValidationReport()
        route_label = f"{route.method} {route.path}"

        # Route has not opted in
        if route.parameters is None:
            return report

        with time_operation("request_validation", route=route_label):
            for spec in route.parameters:
                target = self._select_target(route, request, spec)
                container = request.container(target)
                if not isinstance(container, dict):
                    logger.debug(f"[request] `{target}` is not a mapping, validating `{spec.name}` as absent")
                    container = {}

                errors = check_param(container, spec.name, spec, context, max_depth=self.options.max_depth)
                if errors:
                    report.add_errors(errors)
                    continue

                report.validated.append(spec.name)
                if self.options.map_params and target != "params" and spec.name in container:
                    request.params[spec.name] = container[spec.name]

            if report.is_valid() and self.options.filter_params:
                self._filter(request, [spec.name for spec in route.parameters])

        self._record(report, route_label)
        return report

    def _record(self, report: ValidationReport, route_label: str) -> None:
        self.metrics.record_validation(report.is_valid(), report.error_kinds())

        if not log_report(report, route_label):
            first = report.first_error
            log_with_context(
                logger,
                "info",
                f"Rejected {route_label}",
                route=route_label,
                error_count=len(report.errors),
                parameter=first.label if isinstance(first, ParameterError) else None,
            )
