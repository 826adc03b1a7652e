# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Error type shared by every component of the aggregate.
"""

from __future__ import annotations

import sys

from typing import List, Optional


class ASPError(RuntimeError):
    """
    Failure raised by the aggregate kinematics, the overlap solver, the graph
    and the host shim.

    The name of the raising function is stored on the instance so that a
    chain of errors linked with ``raise ... from`` can be rendered as a trace
    with :func:`format_trace`.

    Parameters
    ----------
    message : str
        Human readable description of the failure.
    function : str, optional
        Name of the function reporting the failure. Defaults to the caller of
        the constructor.
    """

    def __init__(self, message: str, function: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.function = (
            function if function is not None else sys._getframe(1).f_code.co_name
        )


def format_trace(error: BaseException) -> str:
    """
    Render an error and everything it was raised from, outermost first.

    Example
    -------
    >>> try:
    >>>     graph.local_particle_energy
    >>> except ASPError as err:
    >>>     print(format_trace(err))
    """
    lines: List[str] = []
    current: Optional[BaseException] = error
    while current is not None:
        function = getattr(current, "function", type(current).__name__)
        lines.append(f"{function}: {current}")
        current = current.__cause__
    return "\n".join(lines)


__all__ = ["ASPError", "format_trace"]
