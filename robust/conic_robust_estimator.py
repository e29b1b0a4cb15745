from estimator import EstimatorConic
from utils.exceptions import PreconditionError
from utils.normalization import toInhomogeneous

from .robust_estimator import RobustEstimator


class ConicRobustEstimator(RobustEstimator):
    """ 由二维点鲁棒估计二次曲线，残差为归一化曲线矩阵下的代数距离 """

    DEFAULT_THRESHOLD = 1e-6
    DEFAULT_STOP_THRESHOLD = 1e-9

    def __init__(self,
                 points=None,
                 quality_scores=None,
                 method=None,
                 listener=None,
                 normalize=True,
                 allow_lmse=False,
                 **kwargs):
        super().__init__(EstimatorConic(normalize=normalize, allow_lmse=allow_lmse),
                         method=method,
                         listener=listener)
        self._configure(**kwargs)
        if points is not None:
            self.setPoints(points)
        if quality_scores is not None:
            self.setQualityScores(quality_scores)

    def setPoints(self, points):
        """ 设置曲线上的点，(N, 2) 非齐次或 (N, 3) 齐次坐标 """
        self._checkNotLocked()
        if points is None:
            raise PreconditionError("Points are required")
        try:
            points = toInhomogeneous(points, 2)
        except ValueError as e:
            raise PreconditionError(str(e)) from e
        self._setPoints(points)

    def getPoints(self):
        return self.points

    def isNormalizationEnabled(self):
        return self.estimator.isNormalizationEnabled()

    def setNormalizationEnabled(self, enabled):
        self._checkNotLocked()
        self.estimator.setNormalizationEnabled(enabled)

    def isLMSESolutionAllowed(self):
        return self.estimator.isLMSESolutionAllowed()

    def setLMSESolutionAllowed(self, allowed):
        self._checkNotLocked()
        self.estimator.setLMSESolutionAllowed(allowed)
