import numpy as np

from estimator.estimator import Estimator
from model import EuclideanTransformation3D
from solver import SolverEuclideanTransformation3D


class EstimatorEuclideanTransformation3D(Estimator):
    """ 三维刚体变换估计器，数据点集每一行为 [x1, y1, z1, x2, y2, z2]

    优化参数（7 个）为四元数 (a, b, c, d) 和平移向量 (3)。
    """

    PARAMETER_NUMBER = 7

    def __init__(self, weak_minimum_size_allowed=False):
        super().__init__(SolverEuclideanTransformation3D(weak_minimum_size_allowed))

    def setWeakMinimumSizeAllowed(self, allowed):
        self.solver.weak_minimum_size_allowed = bool(allowed)

    def isWeakMinimumSizeAllowed(self):
        return self.solver.weak_minimum_size_allowed

    def __transformErrors(self, data, model):
        return model.transform(data[:, 0:3]) - data[:, 3:6]

    def residual(self, data, model):
        """ 变换后的输入点与输出点的欧式距离 """
        return np.sqrt(np.sum(self.__transformErrors(data, model) ** 2, axis=1))

    def refinementResiduals(self, data, model):
        return self.__transformErrors(data, model).ravel()

    def modelToParameters(self, model):
        return np.r_[model.quaternion, model.translation]

    def parametersToModel(self, parameters):
        return EuclideanTransformation3D.fromQuaternion(parameters[0:4], parameters[4:7])

    def gaugeResiduals(self, parameters):
        """ 四元数模长为 1 """
        return np.array([np.linalg.norm(parameters[0:4]) - 1.0])
