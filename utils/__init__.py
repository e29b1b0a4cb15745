from .exceptions import (ErrorKind, EstimationFailure, LockedError,
                         NotReadyError, PreconditionError,
                         RobustEstimationError, RobustEstimatorError)
from .inliers_data import InliersData
from .normalization import normalizingTransform, toInhomogeneous
from .score import (MedianScoringFunction, MSACScoringFunction,
                    RansacScoringFunction, Score)
from .uniform_random_generator import UniformRandomGenerator
