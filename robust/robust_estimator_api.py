import logging

from .conic_robust_estimator import ConicRobustEstimator
from .euclidean_transformation_3d_robust_estimator import \
    EuclideanTransformation3DRobustEstimator
from .pinhole_camera_robust_estimator import PinholeCameraRobustEstimator
from .robust_estimator import RobustEstimatorMethod

logger = logging.getLogger(__name__)


def __runEstimator(robust_estimator):
    """ 运行估计并返回模型和内点 mask """
    model = robust_estimator.estimate()
    logger.info("Number of iterations = %d", robust_estimator.statistics.iteration_number)
    logger.debug("Number of better models = %d", robust_estimator.statistics.better_model_number)
    mask = robust_estimator.getInliersData().inliers.astype(int)
    return model, mask


""" 用于点对应关系的模型求解函数 """
def findPinholeCamera(points3D,
                      points2D,
                      quality_scores=None,
                      method=RobustEstimatorMethod.PROMEDS,
                      threshold=1.0,
                      conf=0.99,
                      max_iters=5000,
                      seed=None):
    """ 针孔相机求解

    参数
    --------
    points3D : numpy
        三维点集合
    points2D : numpy
        三维点对应的图像投影点集合
    quality_scores : numpy
        每个点对的质量得分，PROSAC 和 PROMedS 需要
    method : RobustEstimatorMethod
        鲁棒估计方法
    threshold : float
        决定内点和外点的阈值（中值类方法作为停止阈值）
    conf : float
        置信参数
    max_iters : int
        最大迭代次数
    seed : int
        随机数种子

    返回
    --------
    PinholeCamera, numpy
        相机模型，标注内点和外点的mask
    """
    robust_estimator = PinholeCameraRobustEstimator(points3D,
                                                    points2D,
                                                    quality_scores=quality_scores,
                                                    method=method,
                                                    threshold=threshold,
                                                    stop_threshold=threshold,
                                                    confidence=conf,
                                                    max_iterations=max_iters,
                                                    seed=seed)
    return __runEstimator(robust_estimator)


def findEuclideanTransformation3D(input_points,
                                  output_points,
                                  quality_scores=None,
                                  method=RobustEstimatorMethod.RANSAC,
                                  threshold=1.0,
                                  conf=0.99,
                                  max_iters=5000,
                                  seed=None):
    """ 三维刚体变换求解

    参数
    --------
    input_points : numpy
        输入点集合
    output_points : numpy
        输出点集合
    quality_scores : numpy
        每个点对的质量得分，PROSAC 和 PROMedS 需要
    method : RobustEstimatorMethod
        鲁棒估计方法
    threshold : float
        决定内点和外点的阈值（中值类方法作为停止阈值）
    conf : float
        置信参数
    max_iters : int
        最大迭代次数
    seed : int
        随机数种子

    返回
    --------
    EuclideanTransformation3D, numpy
        刚体变换，标注内点和外点的mask
    """
    robust_estimator = EuclideanTransformation3DRobustEstimator(input_points,
                                                                output_points,
                                                                quality_scores=quality_scores,
                                                                method=method,
                                                                threshold=threshold,
                                                                stop_threshold=threshold,
                                                                confidence=conf,
                                                                max_iterations=max_iters,
                                                                seed=seed)
    return __runEstimator(robust_estimator)


def findConic(points,
              quality_scores=None,
              method=RobustEstimatorMethod.RANSAC,
              threshold=1e-6,
              conf=0.99,
              max_iters=5000,
              seed=None):
    """ 二次曲线求解

    参数
    --------
    points : numpy
        曲线上的点集合
    quality_scores : numpy
        每个点的质量得分，PROSAC 和 PROMedS 需要
    method : RobustEstimatorMethod
        鲁棒估计方法
    threshold : float
        决定内点和外点的阈值（中值类方法作为停止阈值）
    conf : float
        置信参数
    max_iters : int
        最大迭代次数
    seed : int
        随机数种子

    返回
    --------
    Conic, numpy
        二次曲线，标注内点和外点的mask
    """
    robust_estimator = ConicRobustEstimator(points,
                                            quality_scores=quality_scores,
                                            method=method,
                                            threshold=threshold,
                                            stop_threshold=threshold,
                                            confidence=conf,
                                            max_iterations=max_iters,
                                            seed=seed)
    return __runEstimator(robust_estimator)
