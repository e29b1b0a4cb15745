import numpy as np
import pytest

from robust import (EuclideanTransformation3DRobustEstimator,
                    RobustEstimatorMethod, findEuclideanTransformation3D)
from utils.exceptions import PreconditionError
from utils_helper import generateEuclideanTransformationData

ABSOLUTE_ERROR = 1e-5
LARGE_ABSOLUTE_ERROR = 1e-2


def assertTransformationMatches(transformation, data, tolerance):
    truth = data["transformation"]
    assert np.allclose(transformation.rotation, truth.rotation, atol=tolerance)
    assert np.allclose(transformation.translation, truth.translation, atol=tolerance)
    assert np.linalg.det(transformation.rotation) == pytest.approx(1.0)


@pytest.mark.parametrize("method", list(RobustEstimatorMethod))
def test_noise_free_round_trip(method):
    data = generateEuclideanTransformationData(point_number=30, outlier_ratio=0.0, seed=10)
    robust_estimator = EuclideanTransformation3DRobustEstimator(data["input_points"],
                                                                data["output_points"],
                                                                quality_scores=data["quality_scores"],
                                                                method=method,
                                                                seed=0)
    transformation = robust_estimator.estimate()
    assertTransformationMatches(transformation, data, ABSOLUTE_ERROR)
    assert robust_estimator.getInliersData().num_inliers == 30


@pytest.mark.parametrize("method", [RobustEstimatorMethod.PROMEDS, RobustEstimatorMethod.RANSAC,
                                    RobustEstimatorMethod.MSAC])
def test_outlier_robustness(method):
    for t in range(3):
        data = generateEuclideanTransformationData(point_number=200, outlier_ratio=0.2, seed=20 + t)
        robust_estimator = EuclideanTransformation3DRobustEstimator(data["input_points"],
                                                                    data["output_points"],
                                                                    quality_scores=data["quality_scores"],
                                                                    method=method,
                                                                    seed=t)
        transformation = robust_estimator.estimate()
        assertTransformationMatches(transformation, data, LARGE_ABSOLUTE_ERROR)
        inliers = robust_estimator.getInliersData().inliers
        assert np.all(inliers[~data["outliers"]])


def test_weak_minimum_size():
    data = generateEuclideanTransformationData(point_number=3, outlier_ratio=0.0, seed=30)
    with pytest.raises(PreconditionError):
        EuclideanTransformation3DRobustEstimator(data["input_points"], data["output_points"])

    robust_estimator = EuclideanTransformation3DRobustEstimator(data["input_points"],
                                                                data["output_points"],
                                                                method=RobustEstimatorMethod.RANSAC,
                                                                weak_minimum_size_allowed=True,
                                                                seed=0)
    assert robust_estimator.isWeakMinimumSizeAllowed()
    assert robust_estimator.getMinimumSize() == 3
    assertTransformationMatches(robust_estimator.estimate(), data, ABSOLUTE_ERROR)


def test_covariance_has_quaternion_and_translation_blocks():
    data = generateEuclideanTransformationData(point_number=100, outlier_ratio=0.1, inlier_std=0.1, seed=40)
    robust_estimator = EuclideanTransformation3DRobustEstimator(data["input_points"],
                                                                data["output_points"],
                                                                method=RobustEstimatorMethod.RANSAC,
                                                                keep_covariance=True,
                                                                seed=0)
    robust_estimator.estimate()
    covariance = robust_estimator.getCovariance()
    assert covariance.shape == (7, 7)
    assert np.allclose(covariance, covariance.T)
    assert np.all(np.linalg.eigvalsh(covariance) > 0.0)


def test_find_euclidean_transformation():
    data = generateEuclideanTransformationData(point_number=100, outlier_ratio=0.3, seed=50)
    transformation, mask = findEuclideanTransformation3D(data["input_points"], data["output_points"], seed=0)
    assertTransformationMatches(transformation, data, LARGE_ABSOLUTE_ERROR)
    assert np.all(mask[~data["outliers"]] == 1)
    assert transformation.inverse().transform(data["output_points"][~data["outliers"]]) == \
        pytest.approx(data["input_points"][~data["outliers"]], abs=LARGE_ABSOLUTE_ERROR)
