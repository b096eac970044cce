"""
Graph runtime — thin runner over nodnod.

    from idemgate import graph as G

    @G.node
    class Lookup:
        @classmethod
        async def __compose__(cls, spec: ExecutionSpec) -> "Lookup": ...

    final = await G.run(FinalResultNode, spec)

Nodes are auto-discovered from the target; injected values are keyed by
their runtime type.
"""

from __future__ import annotations

from typing import Any, cast
from collections.abc import Callable, Coroutine

from nodnod import EventLoopAgent, Node, Scope, Value
from nodnod import scalar_node as node


async def run[T](target: type[T], *values: object) -> T:
    """Resolve `target` with `values` injected into a fresh scope."""
    agent = EventLoopAgent.build({cast(type[Node[Any, Any]], target)})

    async with Scope(detail="idemgate") as scope:
        for value in values:
            scope.push(Value(type(value), value))

        run_method = cast(
            Callable[[Scope, dict[type[Any], Scope]], Coroutine[Any, Any, None]],
            getattr(agent, "run"),
        )
        await run_method(scope, {})

        resolved = scope.get(target)
        if resolved is None:
            raise LookupError(f"{target.__name__} was not resolved")
        return cast(T, resolved.value)


__all__ = ("node", "run")
