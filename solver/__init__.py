from .solver_conic_five_point import SolverConicFivePoint
from .solver_engine import SolverEngine
from .solver_euclidean_transformation_3d import SolverEuclideanTransformation3D
from .solver_pinhole_camera_dlt import SolverPinholeCameraDLT
