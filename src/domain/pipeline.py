"""
Sequential step runner for the forwarding pipeline.
"""

import logging
from typing import Callable, Sequence

from .errors import PipelineConfigurationError
from .models import PipelineContext

logger = logging.getLogger(__name__)

Step = Callable[[PipelineContext], PipelineContext]


def run_pipeline(steps: Sequence[Step], context: PipelineContext) -> PipelineContext:
    """
    Run steps in order, feeding each the context returned by the previous one.

    Stops early when a step returns a finished context. The first exception
    raised by a step propagates and no later step runs.

    Args:
        steps: Ordered step callables
        context: Initial context

    Returns:
        PipelineContext: The context returned by the last step that ran

    Raises:
        PipelineConfigurationError: If a step is not callable
    """
    for index, step in enumerate(steps):
        if not callable(step):
            raise PipelineConfigurationError(f"Invalid pipeline step at position {index}: {step!r}")

        context = step(context)

        if context.finished:
            logger.info(f"Pipeline finished early after {getattr(step, '__name__', step)}")
            break

    return context
