"""Fieldflow — field-service pipeline tracking from lead intake to account review."""

import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fieldflow")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from fieldflow.core import Pipeline
from fieldflow.engine import WorkflowEngine
from fieldflow.roles import RoleManager

__all__ = ["Pipeline", "RoleManager", "WorkflowEngine", "__version__"]
