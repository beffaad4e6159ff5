import numpy as np
import pytest

from exdyn.config import ExplicitDynamicsConfig, MaterialParameters
from exdyn.kernels import initialize_element, initialize_node
from exdyn.mesh import box_mesh
from exdyn.region import Region

np.set_printoptions(linewidth=120, precision=12)


# --------------------------------------------------------------------------- #
#                               Meshes                                        #
# --------------------------------------------------------------------------- #
@pytest.fixture(scope="session")
def unit_mesh():
    """A single unit hexahedron."""
    return box_mesh(1, 1, 1)


@pytest.fixture(scope="session")
def bar_mesh():
    """The 10 x 1 x 1 bar used by the end-to-end checks."""
    return box_mesh(10, 1, 1)


@pytest.fixture(scope="session")
def block_mesh():
    """A small mesh with interior nodes shared by eight elements."""
    return box_mesh(3, 2, 2)


# --------------------------------------------------------------------------- #
#                               Settings                                      #
# --------------------------------------------------------------------------- #
@pytest.fixture(scope="function")
def material_override(request):
    return request.param if hasattr(request, "param") else {}


@pytest.fixture(scope="function")
def material(material_override):
    return MaterialParameters(**material_override)


@pytest.fixture(scope="function")
def config_override(request):
    return request.param if hasattr(request, "param") else {}


@pytest.fixture(scope="function")
def config(config_override):
    return ExplicitDynamicsConfig.from_kwargs(**config_override)


@pytest.fixture(scope="session", params=[np.float32, np.float64],
                ids=["float32", "float64"])
def precision(request):
    return request.param


@pytest.fixture(scope="session", params=[2, 3], ids=["2_states", "3_states"])
def num_states(request):
    return request.param


# --------------------------------------------------------------------------- #
#                               Regions                                       #
# --------------------------------------------------------------------------- #
def build_region(mesh, material=None, num_states=2, initialize=True,
                 precision=np.float64):
    """Allocate a region on ``mesh`` and optionally run initialization."""
    region = Region.from_mesh(
        mesh, material=material, num_states=num_states, precision=precision
    )
    if initialize:
        initialize_element(region)
        initialize_node(region)
    return region


@pytest.fixture(scope="function")
def unit_region(unit_mesh, material):
    return build_region(unit_mesh, material)


@pytest.fixture(scope="function")
def bar_region(bar_mesh, material):
    return build_region(bar_mesh, material)


@pytest.fixture(scope="function")
def block_region(block_mesh, material):
    return build_region(block_mesh, material)


@pytest.fixture(scope="session")
def region_builder():
    """Expose :func:`build_region` to tests that need custom regions."""
    return build_region
