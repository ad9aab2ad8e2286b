"""
Capability binder for a native platform API of unknown shape.

The exact method names, argument counts and return representations of the
platform library vary by build. For every named operation the binder holds an
ordered list of candidate CallShapes, probes them until one binds, and keeps
that choice for the rest of the process.

Usage:
    binder = CapabilityBinder(native, id_factory=CSteamID)
    group_id = binder.invoke(CREATE_GROUP, 1, 50)
    ok = binder.try_invoke(SET_PRESENCE, "status", "In Game", default=False)
"""

import dataclasses
import inspect
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..errors import BindingUnresolved, CoopHostError, OperationFailed
from .catalog import default_catalog
from .identifiers import normalize_identifier
from .shapes import CallShape, CapabilityBinding, ShapeCatalog

logger = logging.getLogger(__name__)

IdFactory = Callable[[int], Any]


class BoundOperation:
    """A resolved operation: calling it runs the memoized shape."""

    def __init__(self, binder: "CapabilityBinder", binding: CapabilityBinding):
        self._binder = binder
        self._binding = binding

    @property
    def operation(self) -> str:
        return self._binding.operation

    @property
    def shape(self) -> CallShape:
        return self._binding.working_shape

    def __call__(self, *args: Any) -> Any:
        return self._binder.invoke(self._binding.operation, *args)

    def __repr__(self) -> str:
        return f"BoundOperation({self.operation!r}, {self.shape.describe()!r})"


class CapabilityBinder:
    """
    Resolves and memoizes working call shapes for named platform operations.

    Binding-time errors (missing attribute, argument-count mismatch, missing
    identifier factory) mark a shape unusable during probing. Invocation-time
    errors of the cached shape trigger a single pass over the remaining
    shapes; the first that succeeds becomes the new cached shape.
    """

    def __init__(
        self,
        native: Any,
        catalog: Optional[ShapeCatalog] = None,
        id_factory: Optional[IdFactory] = None
    ):
        self.native = native
        self.id_factory = id_factory
        self._bindings: Dict[str, CapabilityBinding] = {}

        for operation, shapes in (catalog if catalog is not None else default_catalog()).items():
            self.register(operation, shapes)

    normalize_identifier = staticmethod(normalize_identifier)

    def register(self, operation: str, shapes: Iterable[CallShape]) -> None:
        """Add or replace the candidate shapes for an operation."""
        self._bindings[operation] = CapabilityBinding(operation=operation, shapes=tuple(shapes))

    @property
    def operations(self) -> List[str]:
        return list(self._bindings.keys())

    def _binding(self, operation: str) -> CapabilityBinding:
        binding = self._bindings.get(operation)
        if binding is None:
            raise BindingUnresolved(operation, ["operation is not catalogued"])
        return binding

    def binding(self, operation: str) -> CapabilityBinding:
        """Get a copy of the binding record for an operation."""
        return dataclasses.replace(self._binding(operation))

    def is_resolved(self, operation: str) -> bool:
        binding = self._bindings.get(operation)
        return binding is not None and binding.resolved

    def resolution_table(self) -> Dict[str, Optional[str]]:
        """Map each operation to the description of its working shape (None if unresolved)."""
        return {
            name: (b.working_shape.describe() if b.resolved else None)
            for name, b in self._bindings.items()
        }

    # -- probing -----------------------------------------------------------

    def _lookup(self, path: str) -> Any:
        target = self.native
        for part in path.split("."):
            target = getattr(target, part)
        return target

    def _probe(self, binding: CapabilityBinding, shape: CallShape) -> Callable[..., Any]:
        """
        Check that a shape can be bound against the native object.

        Raises AttributeError or TypeError for binding-time failures.
        """
        binding.probes += 1

        if shape.wrap_ids and self.id_factory is None:
            raise TypeError("shape needs an identifier factory")

        target = self._lookup(shape.path)
        if not callable(target):
            raise TypeError(f"{shape.path} is not callable")

        try:
            signature = inspect.signature(target)
        except (TypeError, ValueError):
            # No introspectable signature; the first call decides
            return target

        signature.bind(*([None] * shape.arity))
        return target

    def resolve(self, operation: str) -> BoundOperation:
        """
        Bind an operation to the first candidate shape that probes cleanly.

        Raises:
            BindingUnresolved: when no candidate binds
        """
        binding = self._binding(operation)
        if binding.resolved:
            return BoundOperation(self, binding)

        reasons: List[str] = []
        for index, shape in enumerate(binding.shapes):
            try:
                target = self._probe(binding, shape)
            except (AttributeError, TypeError) as e:
                reasons.append(f"{shape.describe()}: {e}")
                logger.debug(f"Probe failed for '{operation}' with {shape.describe()}: {e}")
                continue

            binding.working_index = index
            binding.target = target
            logger.debug(f"Bound '{operation}' to {shape.describe()}")
            return BoundOperation(self, binding)

        raise BindingUnresolved(operation, reasons)

    # -- invocation --------------------------------------------------------

    def _arguments(self, shape: CallShape, args: Tuple[Any, ...]) -> Tuple[Any, ...]:
        if shape.wrap_ids:
            args = list(args)
            for position in shape.wrap_ids:
                args[position] = self.id_factory(args[position])
            args = tuple(args)
        return shape.arrange(*args)

    @staticmethod
    def _decode(operation: str, shape: CallShape, raw: Any) -> Any:
        if shape.decode is None:
            return raw
        try:
            return shape.decode(raw)
        except CoopHostError:
            raise
        except Exception as e:
            raise OperationFailed(
                f"'{operation}' returned an unreadable {type(raw).__name__}: {e}",
                operation=operation
            ) from e

    def invoke(self, operation: str, *args: Any) -> Any:
        """
        Call an operation through its cached shape.

        Raises:
            BindingUnresolved: when neither the cached shape nor any other
                candidate can be invoked
            UnrecognizedIdentifierShape: when a successful call returns an
                identifier that cannot be normalized
            OperationFailed: when a successful call returns a value its
                decoder cannot read
        """
        binding = self._binding(operation)
        if not binding.resolved:
            self.resolve(operation)

        cached_index = binding.working_index
        shape = binding.shapes[cached_index]
        try:
            raw = binding.target(*self._arguments(shape, args))
        except Exception as e:
            reasons = [f"{shape.describe()}: {e}"]
            logger.debug(f"Cached shape for '{operation}' failed: {e}")
        else:
            return self._decode(operation, shape, raw)

        # The cached shape broke; give every other candidate one chance
        for index, candidate in enumerate(binding.shapes):
            if index == cached_index:
                continue
            try:
                target = self._probe(binding, candidate)
                raw = target(*self._arguments(candidate, args))
            except Exception as e:
                reasons.append(f"{candidate.describe()}: {e}")
                continue

            binding.working_index = index
            binding.target = target
            logger.info(f"Re-bound '{operation}' to {candidate.describe()}")
            return self._decode(operation, candidate, raw)

        raise BindingUnresolved(operation, reasons)

    def try_invoke(self, operation: str, *args: Any, default: Any = None) -> Any:
        """Invoke an operation, returning `default` on any coophost error."""
        try:
            return self.invoke(operation, *args)
        except CoopHostError as e:
            logger.debug(f"'{operation}' unavailable: {e}")
            return default
