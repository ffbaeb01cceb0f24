from __future__ import annotations

import inspect
from typing import Any, Callable

from ..observability.logging import get_logger
from .outcome import ErrorKind, Failure, Outcome, Success, failure

log = get_logger("effect_runner")


class EffectRunner:
    """
    Runs a tool executor and normalizes whatever it produces into exactly one Outcome.

    Executors may be coroutines (network I/O, timers); the runner awaits them to completion.
    Faults raised inside an executor stop here and become Failure(Internal).
    """

    async def run(self, executor: Callable[[Any], Any], args: Any) -> Outcome:
        try:
            result = executor(args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            log.exception("executor_failed", error=str(e) or type(e).__name__)
            return failure(ErrorKind.INTERNAL, str(e) or type(e).__name__)

        if isinstance(result, (Success, Failure)):
            return result
        return Success(value=result)
