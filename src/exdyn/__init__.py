"""
exdyn: explicit-dynamics hexahedral time-stepping engine
"""

from importlib.metadata import PackageNotFoundError, version

# Suppress Numba performance warnings for library users. Small meshes leave
# the parallel loops with too little work to split, which is not actionable.
import warnings
from numba.core.errors import NumbaPerformanceWarning
warnings.filterwarnings("ignore", category=NumbaPerformanceWarning)

from exdyn.config import ExplicitDynamicsConfig, MaterialParameters  # noqa
from exdyn.driver import (  # noqa
    PerformanceData,
    SimulationPhase,
    SimulationResult,
    explicit_dynamics_app,
    run_simulation,
)
from exdyn.errors import (  # noqa
    ConfigurationError,
    ExplicitDynamicsError,
    StabilityError,
)
from exdyn.mesh import BoxMesh, box_mesh  # noqa
from exdyn.region import HostMirror, Region  # noqa
from exdyn.state import StateIndices, state_indices  # noqa
from exdyn.status import StatusCode  # noqa
from exdyn.time_logger import TimeLogger  # noqa
from exdyn import kernels  # noqa

__all__ = [
    "BoxMesh",
    "box_mesh",
    "ConfigurationError",
    "ExplicitDynamicsConfig",
    "ExplicitDynamicsError",
    "HostMirror",
    "MaterialParameters",
    "PerformanceData",
    "Region",
    "SimulationPhase",
    "SimulationResult",
    "StabilityError",
    "StateIndices",
    "StatusCode",
    "TimeLogger",
    "explicit_dynamics_app",
    "kernels",
    "run_simulation",
    "state_indices",
]

try:
    __version__ = version("exdyn")
except PackageNotFoundError:
    # Package is not installed
    __version__ = "unknown"
