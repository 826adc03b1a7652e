# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
String keyed registry for the pluggable constitutive components.
"""

from __future__ import annotations

from abc import ABC
from inspect import signature
from typing import Any, Callable, ClassVar, Dict, Type, TypeVar, cast

RootT = TypeVar("RootT", bound="Factory")
SubT = TypeVar("SubT", bound="Factory")


class Factory(ABC):
    """
    Base class of component families that are selected by name.

    Notes
    -----
    Each direct subclass owns its own registry. Keys are not case sensitive.

    Example
    -------
    >>> class TractionSeparationLaw(Factory, ABC):
    >>>     ...
    >>>
    >>> @TractionSeparationLaw.register("linear")
    >>> class LinearTractionSeparation(TractionSeparationLaw):
    >>>     ...
    >>>
    >>> law = TractionSeparationLaw.create("linear")
    """

    __slots__ = ()
    _registry: ClassVar[Dict[str, Type["Factory"]]] = {}

    def __init_subclass__(cls, **kw: Any) -> None:
        super().__init_subclass__(**kw)
        # registered implementations inherit their family's registry
        if Factory in cls.__bases__:
            cls._registry = {}

        if "create" in cls.__dict__:
            raise TypeError(f"{cls.__name__} is not allowed to override `create`.")

    @classmethod
    def register(
        cls: Type[RootT], key: str | None = None
    ) -> Callable[[Type[SubT]], Type[SubT]]:
        """
        Decorator registering an implementation under ``key``.

        Parameters
        ----------
        key : str or None, optional
            Registry key. Defaults to the lowercase class name.

        Raises
        ------
        ValueError
            If the key is already taken.
        """

        def decorator(sub_cls: Type[SubT]) -> Type[SubT]:
            k = (key or sub_cls.__name__).lower()
            if k in cls._registry:
                raise ValueError(
                    f"{cls.__name__}: key '{k}' already registered for {cls._registry[k].__name__}"
                )
            cls._registry[k] = sub_cls
            setattr(sub_cls, "__registry_name__", k)
            return sub_cls

        return decorator

    @classmethod
    def registered(cls) -> list[str]:
        """Keys known to this family."""
        return sorted(cls._registry)

    @property
    def type_name(self) -> str:
        return getattr(type(self), "__registry_name__", type(self).__name__.lower())

    @classmethod
    def create(cls: Type[RootT], key: str, /, **kw: Any) -> RootT:
        """
        Instantiate the implementation registered under ``key``.

        Raises
        ------
        KeyError
            If ``key`` is unknown.
        TypeError
            If the keyword arguments do not match the constructor.
        """
        try:
            sub_cls = cls._registry[key.lower()]
        except KeyError as err:
            raise KeyError(
                f"Unknown {cls.__name__} '{key}'. Available: {list(cls._registry)}"
            ) from err

        sig = signature(sub_cls)
        try:
            sig.bind_partial(**kw)
        except TypeError as err:
            raise TypeError(
                f"Invalid keyword(s) for {sub_cls.__name__}: {err}. "
                f"Expected signature: {sub_cls.__name__}{sig}"
            ) from None

        return cast(Callable[..., RootT], sub_cls)(**kw)


__all__ = ["Factory"]
