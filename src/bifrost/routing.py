"""
Routing for Bifrost.

Path templates such as ``/users/:id/posts`` are compiled into anchored
regular expressions. Routes are kept per HTTP method in registration
order and the first route whose pattern matches wins: no specificity
ranking is applied, so ``/users/:id`` registered before ``/users/me``
shadows the literal route.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass, field

from bifrost.exceptions import RegistrationClosedError, RouteCompileError
from bifrost.types import RouteHandler

# A parameter captures exactly one non-empty path segment
PARAM_PATTERN: str = r"([^/]+)"
PARAM_PREFIX: str = ":"


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """An anchored matcher for one path template."""

    template: str
    regex: re.Pattern[str]
    param_names: tuple[str, ...]

    def match(self, path: str) -> tuple[str, ...] | None:
        """Return captured segments in template order, or None."""
        m = self.regex.fullmatch(path)
        if m is None:
            return None
        return m.groups()


def compile_pattern(template: str) -> CompiledPattern:
    """
    Compile a path template.

    Segments starting with ``:`` become single-segment captures named by
    the rest of the segment. Everything else is matched literally.

    Raises:
        RouteCompileError: If the template is malformed.
    """
    if not template.startswith("/"):
        raise RouteCompileError(f"Path template must start with '/': {template!r}")

    names: list[str] = []
    parts: list[str] = []

    for segment in template.split("/"):
        if segment.startswith(PARAM_PREFIX):
            name = segment[len(PARAM_PREFIX):]
            if not name:
                raise RouteCompileError(f"Empty parameter name in {template!r}")
            if name in names:
                raise RouteCompileError(
                    f"Duplicate parameter {name!r} in {template!r}"
                )
            names.append(name)
            parts.append(PARAM_PATTERN)
        else:
            parts.append(re.escape(segment))

    regex = re.compile("/".join(parts))
    # Literal segments are escaped, so only parameters add groups
    if regex.groups != len(names):
        raise RouteCompileError(
            f"Template {template!r} compiled to {regex.groups} groups "
            f"for {len(names)} parameters"
        )
    return CompiledPattern(template=template, regex=regex, param_names=tuple(names))


@dataclass(frozen=True, slots=True)
class RoutePattern:
    """A registered route. Immutable once registered."""

    method: str
    matcher: CompiledPattern
    handler: RouteHandler

    @property
    def path(self) -> str:
        return self.matcher.template

    @property
    def param_names(self) -> tuple[str, ...]:
        return self.matcher.param_names


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful lookup."""

    route: RoutePattern
    groups: tuple[str, ...] = ()

    @property
    def params(self) -> dict[str, str]:
        return dict(zip(self.route.param_names, self.groups))


@dataclass
class RouteTable:
    """
    Mapping from HTTP method to an ordered list of routes.

    Methods are compared case-sensitively. The table is built before the
    router starts serving; :meth:`freeze` closes it and any later
    :meth:`register` call raises :class:`RegistrationClosedError`.
    """

    _routes: dict[str, list[RoutePattern]] = field(default_factory=dict)
    _frozen: bool = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def register(
        self,
        method: str,
        template: str,
        handler: RouteHandler,
    ) -> RoutePattern:
        """Compile *template* and append it to *method*'s route list."""
        if self._frozen:
            raise RegistrationClosedError(
                f"Cannot register {method} {template}: router is already serving"
            )
        route = RoutePattern(
            method=method,
            matcher=compile_pattern(template),
            handler=handler,
        )
        self._routes.setdefault(method, []).append(route)
        return route

    def lookup(self, method: str, path: str) -> RouteMatch | None:
        """Return the first route for *method* matching *path*."""
        for route in self._routes.get(method, ()):
            groups = route.matcher.match(path)
            if groups is not None:
                return RouteMatch(route, groups)
        return None

    @property
    def routes(self) -> list[RoutePattern]:
        """All routes, grouped by method, each group in registration order."""
        return list(self)

    def __iter__(self) -> Iterator[RoutePattern]:
        for routes in self._routes.values():
            yield from routes

    def __len__(self) -> int:
        return sum(len(routes) for routes in self._routes.values())
