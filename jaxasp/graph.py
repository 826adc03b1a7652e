# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Lazily evaluated, cached quantities with nested reset scopes.

A graph is a class whose cached quantities are methods decorated with
:class:`quantity`. Reading the attribute returns the cached value, computing
it first if needed; the computation reads its dependencies as attributes too,
so evaluation is pulled transitively through the graph. The first time a
cell is populated it registers with the list of its :class:`Scope`, and the
reset methods clear those lists from the narrowest scope outwards.

Example
-------
>>> class Pair(KinematicGraph):
>>>     @quantity(Scope.LOCAL_PARTICLE)
>>>     def radius(self):
>>>         return 1.0
>>>
>>>     @quantity(Scope.INTERACTION_PAIR)
>>>     def diameter(self):
>>>         return 2 * self.radius
>>>
>>> graph = Pair()
>>> graph.diameter
2.0
>>> graph.reset_local_particle()
"""

from __future__ import annotations

import enum

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .errors import ASPError


class Scope(enum.IntEnum):
    """Nested iteration contexts of the assembly, broadest first."""

    LOCAL_PARTICLE = 0
    SURFACE_POINT = 1
    INTERACTION_PAIR = 2


@dataclass(slots=True)
class Cell:
    """Storage of one cached quantity."""

    name: str
    scope: Scope
    populated: bool = False
    value: Any = None


class quantity:
    """
    Decorator turning a method of a :class:`KinematicGraph` into a cached
    quantity of the given scope.
    """

    def __init__(self, scope: Scope) -> None:
        self.scope = Scope(scope)
        self.func: Optional[Callable[[Any], Any]] = None
        self.name = ""

    def __call__(self, func: Callable[[Any], Any]) -> "quantity":
        self.func = func
        self.name = func.__name__
        self.__doc__ = func.__doc__
        return self

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, graph: Optional["KinematicGraph"], owner: Optional[type] = None) -> Any:
        if graph is None:
            return self
        return graph.get(self.name)

    def __set__(self, graph: "KinematicGraph", value: Any) -> None:
        raise AttributeError(
            f"'{self.name}' is a cached quantity, use set_quantity('{self.name}', value)"
        )


@lru_cache(maxsize=None)
def _collect_quantities(cls: type) -> Tuple[Tuple[str, quantity], ...]:
    nodes: Dict[str, quantity] = {}
    for klass in reversed(cls.__mro__):
        for name, attr in vars(klass).items():
            if isinstance(attr, quantity):
                nodes[name] = attr
    return tuple(nodes.items())


class KinematicGraph:
    """
    Store of cached quantities and of the three scope lists.

    Not thread safe: every worker needs its own graph.
    """

    def __init__(self) -> None:
        self._cells: Dict[str, Cell] = {}
        self._scopes: Dict[Scope, List[Cell]] = {scope: [] for scope in Scope}
        self._evaluating: Set[str] = set()

    @classmethod
    def quantities(cls) -> Dict[str, quantity]:
        """All the quantities of the graph class, by name."""
        return dict(_collect_quantities(cls))

    def _node(self, name: str) -> quantity:
        node = dict(_collect_quantities(type(self))).get(name)
        if node is None:
            raise ASPError(f"unknown quantity '{name}'", function=type(self).__name__)
        return node

    def cell(self, name: str) -> Cell:
        cell = self._cells.get(name)
        if cell is None:
            cell = Cell(name, self._node(name).scope)
            self._cells[name] = cell
        return cell

    def _store(self, cell: Cell, value: Any) -> None:
        if not cell.populated:
            self._scopes[cell.scope].append(cell)
        cell.value = value
        cell.populated = True

    def get(self, name: str) -> Any:
        """Cached value of ``name``, evaluated on first access."""
        cell = self.cell(name)
        if not cell.populated:
            self.set(name)
        return cell.value

    def set(self, name: str) -> None:
        """
        Evaluate ``name`` from its dependencies and cache it.

        Raises
        ------
        ASPError
            If the evaluation fails, chained to the original error. The cell
            stays unpopulated.
        """
        node = self._node(name)
        if name in self._evaluating:
            raise ASPError(f"cyclic dependency through '{name}'", function=type(self).__name__)

        self._evaluating.add(name)
        try:
            value = node.func(self)
        except Exception as err:
            raise ASPError(
                f"failed to evaluate '{name}'", function=f"{type(self).__name__}.{name}"
            ) from err
        finally:
            self._evaluating.discard(name)
        self._store(self.cell(name), value)

    def set_quantity(self, name: str, value: Any) -> None:
        """Override ``name`` with ``value`` until its scope is reset."""
        self._store(self.cell(name), value)

    def is_populated(self, name: str) -> bool:
        return self.cell(name).populated

    def registered(self, scope: Scope) -> Tuple[str, ...]:
        """Names of the cells currently registered with ``scope``."""
        return tuple(cell.name for cell in self._scopes[Scope(scope)])

    def _clear(self, scope: Scope) -> None:
        cells = self._scopes[scope]
        for cell in cells:
            cell.populated = False
            cell.value = None
        cells.clear()

    def reset_interaction_pair(self) -> None:
        self._clear(Scope.INTERACTION_PAIR)

    def reset_surface_point(self) -> None:
        self.reset_interaction_pair()
        self._clear(Scope.SURFACE_POINT)

    def reset_local_particle(self) -> None:
        """Clear every cached quantity of the three scopes."""
        self.reset_surface_point()
        self._clear(Scope.LOCAL_PARTICLE)


__all__ = ["Scope", "Cell", "quantity", "KinematicGraph"]
