"""
simfork - Fork load-test simulations during a build.

Compile and run simulations in forked JVMs, then report the run to a
benchmarking service.
"""

from simfork.client import ReportingClient
from simfork.config import SimforkConfig, load_config
from simfork.workflow import Workflow, WorkflowResult

__version__ = "0.1.0"
__all__ = [
    "ReportingClient",
    "SimforkConfig",
    "Workflow",
    "WorkflowResult",
    "__version__",
    "load_config",
]
