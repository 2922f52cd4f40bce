"""Run docker-compose for sourced, installing a container alternative when needed."""

__version__ = "0.1.0"

from sourced_compose.compose import run, run_with_io  # noqa: E402

__all__ = ["__version__", "run", "run_with_io"]
