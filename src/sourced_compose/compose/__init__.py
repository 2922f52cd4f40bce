"""docker-compose resolution, installation and execution.

Resolution prefers a ``docker-compose`` already on ``PATH`` so a
user-managed installation always wins. Only when none is found is the
pinned ``run.sh`` container wrapper downloaded into the data directory.
Every call resolves again; the installed file is the only cache.
"""

from sourced_compose.compose.cancellation import CancelContext
from sourced_compose.compose.executor import COMPATIBILITY_FLAG, execute
from sourced_compose.compose.facade import Compose, run, run_with_io
from sourced_compose.compose.resolver import (
    BinaryResolver,
    ContainerAlternativeStrategy,
    ExecutableHandle,
    SearchPathStrategy,
    default_resolver,
    resolve,
)

__all__ = [
    "COMPATIBILITY_FLAG",
    "BinaryResolver",
    "CancelContext",
    "Compose",
    "ContainerAlternativeStrategy",
    "ExecutableHandle",
    "SearchPathStrategy",
    "default_resolver",
    "execute",
    "resolve",
    "run",
    "run_with_io",
]
