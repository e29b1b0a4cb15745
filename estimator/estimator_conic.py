import numpy as np

from estimator.estimator import Estimator
from model import Conic
from solver import SolverConicFivePoint


class EstimatorConic(Estimator):
    """ 二次曲线估计器，数据点集每一行为曲线上的点 [x, y]

    残差为归一化二次曲线矩阵下的代数距离 |x^T C x|，
    优化参数为 6 个系数 (a, b, c, d, e, f)。
    """

    PARAMETER_NUMBER = 6

    def __init__(self, normalize=True, allow_lmse=False):
        super().__init__(SolverConicFivePoint(normalize=normalize, allow_lmse=allow_lmse))

    def isNormalizationEnabled(self):
        return self.solver.normalize

    def setNormalizationEnabled(self, enabled):
        self.solver.normalize = bool(enabled)

    def isLMSESolutionAllowed(self):
        return self.solver.allow_lmse

    def setLMSESolutionAllowed(self, allowed):
        self.solver.allow_lmse = bool(allowed)

    def residual(self, data, model):
        return np.abs(model.normalize().locusResiduals(data[:, 0:2]))

    def refinementResiduals(self, data, model):
        return model.normalize().locusResiduals(data[:, 0:2])

    def modelToParameters(self, model):
        return model.normalize().coefficients

    def parametersToModel(self, parameters):
        return Conic.fromCoefficients(parameters)

    def gaugeResiduals(self, parameters):
        """ 二次曲线矩阵的 Frobenius 范数为 1 """
        return np.array([np.linalg.norm(Conic.fromCoefficients(parameters).descriptor) - 1.0])
