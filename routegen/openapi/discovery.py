"""
routegen — Route-Prefix Discovery Strategies
==============================================

What:  Works out which URL prefix each controller is mounted under, so the
       document's public paths match the mounted routers.
How:   Four interchangeable strategies share ``resolve() -> List[RouteMapping]``.
       resolve_route_mappings() picks exactly one, in priority order:

    1. StaticMappingStrategy        explicit mappings, used verbatim
    2. ControllerDirectoryStrategy  scan a directory for *_controller.py
    3. RoutesIndexStrategy          best-effort parse of a routes index module
    4. RegistryDerivedStrategy      derive from already-registered names

Naming rules (shared by 2 and 4):
    "user_controller.py"  → "UserController",      prefix "/users"
    "blog_post_controller.py" → "BlogPostController", prefix "/blog-posts"
    "UserController" (registered name) → prefix "/users"
    Pluralisation appends "s" unless the entity already ends in "s".

Failure handling:
    A controller file that raises while loading is logged and contributes no
    mapping; the rest of the directory is still discovered. A missing or
    unparsable routes index yields no mappings. Nothing here aborts setup.
"""

import ast
import importlib.util
import logging
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Union

from routegen.exceptions import DiscoveryError
from routegen.registry import ControllerRegistry, controller_registry
from routegen.schemas import RouteMapping

logger = logging.getLogger(__name__)

CONTROLLER_SUFFIX = "_controller"
ROUTES_SUFFIXES = ("_routes", "_router")
DISCOVERED_MODULE_PREFIX = "_routegen_discovered_"

PathLike = Union[str, Path]


# ══════════════════════════════════════════════════════════════════════════
# Naming Helpers
# ══════════════════════════════════════════════════════════════════════════


def pluralize(entity: str) -> str:
    return entity if entity.endswith("s") else f"{entity}s"


def controller_name_for(entity: str) -> str:
    """"blog_post" → "BlogPostController"."""
    return "".join(part[:1].upper() + part[1:] for part in entity.split("_") if part) + "Controller"


def prefix_for_entity(entity: str) -> str:
    return "/" + pluralize(entity.replace("_", "-"))


def prefix_for_controller_name(controller_name: str) -> str:
    """"UserController" → "/users"."""
    entity = controller_name.removesuffix("Controller").lower()
    return "/" + pluralize(entity)


# ══════════════════════════════════════════════════════════════════════════
# Strategies
# ══════════════════════════════════════════════════════════════════════════


class DiscoveryStrategy(Protocol):
    def resolve(self) -> List[RouteMapping]: ...


class StaticMappingStrategy:
    """Explicitly supplied mappings, returned as given."""

    def __init__(self, mappings: Iterable[RouteMapping]):
        self.mappings = [m if isinstance(m, RouteMapping) else RouteMapping.model_validate(m) for m in mappings]

    def resolve(self) -> List[RouteMapping]:
        return list(self.mappings)


class ControllerDirectoryStrategy:
    """
    Scan a directory for ``*_controller.py`` files and load each one.

    Loading executes the file's top-level code under a private module name,
    which runs its @controller registration. A file that was already imported
    elsewhere registers again; the registry keeps the latest record.
    """

    def __init__(self, directory: PathLike):
        self.directory = Path(directory)

    def controller_files(self) -> List[Path]:
        return sorted(
            p for p in self.directory.iterdir() if p.is_file() and p.suffix == ".py" and p.stem.endswith(CONTROLLER_SUFFIX)
        )

    def load(self, path: Path) -> None:
        """Execute one controller file. Raises DiscoveryError on any failure."""
        module_name = DISCOVERED_MODULE_PREFIX + path.stem
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise DiscoveryError(message=f"Cannot build an import spec for {path.name}", path=str(path))
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            sys.modules.pop(module_name, None)
            raise DiscoveryError(
                message=f"Failed to load controller file {path.name}: {exc}",
                path=str(path),
                context={"error_type": type(exc).__name__},
            ) from exc

    def resolve(self) -> List[RouteMapping]:
        if not self.directory.is_dir():
            logger.warning("Controllers directory not found: %s", self.directory)
            return []

        mappings: List[RouteMapping] = []
        for path in self.controller_files():
            entity = path.stem[: -len(CONTROLLER_SUFFIX)]
            controller_name = controller_name_for(entity)
            route_prefix = prefix_for_entity(entity)
            try:
                self.load(path)
            except DiscoveryError as exc:
                logger.warning("Skipping controller %s: %s", controller_name, exc.message, exc_info=exc.__cause__)
                continue
            mappings.append(RouteMapping(controller_name=controller_name, route_prefix=route_prefix))
            logger.info("Loaded controller %s -> %s", controller_name, route_prefix)
        return mappings


class RoutesIndexStrategy:
    """
    Best-effort: recover prefixes from a routes index module.

    Recognised shapes (anything else is ignored):

        from .user_routes import router as user_router
        from app.routes import post_routes
        import app.routes.comment_routes as comment_routes

        api.include_router(user_router, prefix="/users")
        api.include_router(post_routes.router, prefix="/posts")

    The router variable is resolved to the module it was imported from; the
    module's base name minus "_routes"/"_router" gives the controller name.
    Calls whose router or prefix cannot be resolved statically are skipped.
    This reads source text and will miss anything built dynamically; prefer
    explicit mappings or the controllers directory.
    """

    def __init__(self, routes_path: PathLike):
        path = Path(routes_path)
        self.index_path = path / "__init__.py" if path.is_dir() else path

    @staticmethod
    def _imported_modules(tree: ast.AST) -> Dict[str, str]:
        """Local variable name → base name of the module it came from."""
        sources: Dict[str, str] = {}
        for node in ast.walk(tree):
            if isinstance(node, ast.ImportFrom):
                module_base = (node.module or "").rsplit(".", 1)[-1]
                for alias in node.names:
                    local = alias.asname or alias.name
                    if alias.name in ("router", "api_router") and module_base:
                        # from .user_routes import router [as x]
                        sources[local] = module_base
                    else:
                        # from app.routes import user_routes [as x]
                        sources[local] = alias.name
            elif isinstance(node, ast.Import):
                for alias in node.names:
                    local = alias.asname or alias.name.split(".")[0]
                    sources[local] = alias.name.rsplit(".", 1)[-1]
        return sources

    @staticmethod
    def _router_variable(arg: ast.expr) -> Optional[str]:
        if isinstance(arg, ast.Name):
            return arg.id
        if isinstance(arg, ast.Attribute) and isinstance(arg.value, ast.Name):
            return arg.value.id
        return None

    @staticmethod
    def _controller_for_module(module_base: str) -> str:
        entity = module_base
        for suffix in ROUTES_SUFFIXES:
            if entity.endswith(suffix):
                entity = entity[: -len(suffix)]
                break
        return controller_name_for(entity)

    def parse(self) -> ast.AST:
        if not self.index_path.is_file():
            raise DiscoveryError(message=f"Routes index file not found at {self.index_path}", path=str(self.index_path))
        try:
            return ast.parse(self.index_path.read_text(encoding="utf-8"), filename=str(self.index_path))
        except (SyntaxError, UnicodeDecodeError) as exc:
            raise DiscoveryError(
                message=f"Routes index file could not be parsed: {exc}",
                path=str(self.index_path),
            ) from exc

    def resolve(self) -> List[RouteMapping]:
        try:
            tree = self.parse()
        except DiscoveryError as exc:
            logger.warning("Route index discovery skipped: %s", exc.message)
            return []

        sources = self._imported_modules(tree)
        found = []
        for node in ast.walk(tree):
            if not (
                isinstance(node, ast.Call)
                and isinstance(node.func, ast.Attribute)
                and node.func.attr == "include_router"
                and node.args
            ):
                continue
            variable = self._router_variable(node.args[0])
            prefix = next(
                (
                    kw.value.value
                    for kw in node.keywords
                    if kw.arg == "prefix" and isinstance(kw.value, ast.Constant) and isinstance(kw.value.value, str)
                ),
                None,
            )
            if variable is None or prefix is None or variable not in sources:
                continue
            mapping = RouteMapping(
                controller_name=self._controller_for_module(sources[variable]),
                route_prefix=prefix,
            )
            found.append(((node.lineno, node.col_offset), mapping))
        # ast.walk is breadth-first; report mounts in source order
        return [mapping for _, mapping in sorted(found, key=lambda item: item[0])]


class RegistryDerivedStrategy:
    """Fallback: one mapping per registered controller, prefix from its name."""

    def __init__(self, registry: Optional[ControllerRegistry] = None):
        self.registry = controller_registry if registry is None else registry

    def resolve(self) -> List[RouteMapping]:
        return [
            RouteMapping(controller_name=name, route_prefix=prefix_for_controller_name(name))
            for name in self.registry.get_all()
        ]


def select_strategy(
    custom_mappings: Optional[Iterable[RouteMapping]] = None,
    controllers_dir: Optional[PathLike] = None,
    routes_dir: Optional[PathLike] = None,
    registry: Optional[ControllerRegistry] = None,
) -> DiscoveryStrategy:
    """Precedence: custom_mappings > controllers_dir > routes_dir > registry."""
    if custom_mappings is not None:
        return StaticMappingStrategy(custom_mappings)
    if controllers_dir:
        return ControllerDirectoryStrategy(controllers_dir)
    if routes_dir:
        return RoutesIndexStrategy(routes_dir)
    return RegistryDerivedStrategy(registry)


def resolve_route_mappings(
    custom_mappings: Optional[Iterable[RouteMapping]] = None,
    controllers_dir: Optional[PathLike] = None,
    routes_dir: Optional[PathLike] = None,
    registry: Optional[ControllerRegistry] = None,
) -> List[RouteMapping]:
    strategy = select_strategy(custom_mappings, controllers_dir, routes_dir, registry)
    mappings = strategy.resolve()
    logger.info("Resolved %d route mappings via %s", len(mappings), type(strategy).__name__)
    return mappings
