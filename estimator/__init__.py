from .estimator import Estimator
from .estimator_conic import EstimatorConic
from .estimator_euclidean_transformation_3d import \
    EstimatorEuclideanTransformation3D
from .estimator_pinhole_camera import EstimatorPinholeCamera
