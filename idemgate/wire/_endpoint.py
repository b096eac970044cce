from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from idemgate.coordinator import Coordinator, Executor
from idemgate.wire._http import HTTPRouteTrigger

type Exposure = tuple[HTTPRouteTrigger, type[BaseModel]]


@dataclass(slots=True)
class Endpoint:
    """A write operation guarded by a coordinator, exposed on one or more routes."""

    coordinator: Coordinator
    executor: Executor[Any]
    exposures: list[Exposure] = field(default_factory=list[Exposure])

    def expose(self, trigger: HTTPRouteTrigger, request: type[BaseModel]) -> Endpoint:
        return Endpoint(
            coordinator=self.coordinator,
            executor=self.executor,
            exposures=[*self.exposures, (trigger, request)],
        )


def endpoint(coordinator: Coordinator, executor: Executor[Any]) -> Endpoint:
    return Endpoint(coordinator=coordinator, executor=executor)
