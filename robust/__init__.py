from .conic_robust_estimator import ConicRobustEstimator
from .euclidean_transformation_3d_robust_estimator import \
    EuclideanTransformation3DRobustEstimator
from .pinhole_camera_robust_estimator import PinholeCameraRobustEstimator
from .robust_estimator import RobustEstimator, RobustEstimatorMethod
from .robust_estimator_api import (findConic, findEuclideanTransformation3D,
                                   findPinholeCamera)
from .robust_estimator_listener import RobustEstimatorListener
