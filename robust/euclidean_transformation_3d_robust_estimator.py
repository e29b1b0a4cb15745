import numpy as np

from estimator import EstimatorEuclideanTransformation3D
from utils.exceptions import PreconditionError
from utils.normalization import toInhomogeneous

from .robust_estimator import RobustEstimator


class EuclideanTransformation3DRobustEstimator(RobustEstimator):
    """ 由三维点对鲁棒估计刚体变换 y = R x + t

    协方差（保留时）为 7x7：四元数 (a, b, c, d) 和平移向量。
    """

    DEFAULT_THRESHOLD = 1.0
    DEFAULT_STOP_THRESHOLD = 1.0

    def __init__(self,
                 input_points=None,
                 output_points=None,
                 quality_scores=None,
                 method=None,
                 listener=None,
                 weak_minimum_size_allowed=False,
                 **kwargs):
        """ 初始化刚体变换鲁棒估计器

        参数
        ----------
        input_points : numpy 可选
            (N, 3) 非齐次或 (N, 4) 齐次输入点
        output_points : numpy 可选
            与输入点对应的输出点
        quality_scores : numpy 可选
            每个点对的质量得分
        method : RobustEstimatorMethod 可选
            鲁棒估计方法
        listener : RobustEstimatorListener 可选
            估计过程的监听器
        weak_minimum_size_allowed : bool 可选
            是否允许 3 个点的弱最小样本
        **kwargs
            其他设置，如 threshold, confidence, max_iterations
        """
        super().__init__(EstimatorEuclideanTransformation3D(weak_minimum_size_allowed),
                         method=method,
                         listener=listener)
        self._configure(**kwargs)
        if input_points is not None or output_points is not None:
            self.setPoints(input_points, output_points)
        if quality_scores is not None:
            self.setQualityScores(quality_scores)

    def setPoints(self, input_points, output_points):
        """ 设置输入点和输出点，两者长度必须相同 """
        self._checkNotLocked()
        if input_points is None or output_points is None:
            raise PreconditionError("Both input and output points are required")
        try:
            input_points = toInhomogeneous(input_points, 3)
            output_points = toInhomogeneous(output_points, 3)
        except ValueError as e:
            raise PreconditionError(str(e)) from e
        if len(input_points) != len(output_points):
            raise PreconditionError("Input and output points must have the same length")
        self._setPoints(np.c_[input_points, output_points])

    def getInputPoints(self):
        return None if self.points is None else self.points[:, 0:3]

    def getOutputPoints(self):
        return None if self.points is None else self.points[:, 3:6]
