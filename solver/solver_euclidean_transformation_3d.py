import numpy as np

from model import EuclideanTransformation3D
from solver.solver_engine import SolverEngine
from utils.exceptions import EstimationFailure


class SolverEuclideanTransformation3D(SolverEngine):
    """ SVD 求解三维刚体变换 (Kabsch / 无尺度 Umeyama)

    数据点集的每一行为 [x1, y1, z1, x2, y2, z2]：输入点和输出点。
    """

    MINIMUM_SIZE = 4
    WEAK_MINIMUM_SIZE = 3

    def __init__(self, weak_minimum_size_allowed=False):
        super().__init__()
        # 是否允许使用 3 个点的弱最小样本
        self.weak_minimum_size_allowed = weak_minimum_size_allowed

    def sampleSize(self):
        """ 模型参数估计所需的最小样本数 """
        return self.WEAK_MINIMUM_SIZE if self.weak_minimum_size_allowed else self.MINIMUM_SIZE

    def estimateModel(self,
                      points,
                      sample,
                      sample_number=None,
                      weights=None):
        """ 从给定的样本点，加权拟合刚体变换

        参数
        ----------
        points : numpy
            输入的数据点集 (N, 6)
        sample : list
            用于估计模型的样本点序号列表，None 表示使用全部点
        sample_number : int 可选
            样本点的数目
        weights : numpy 可选
            数据点集中点的对应权重

        返回
        ----------
        list(EuclideanTransformation3D)
            通过样本估计的模型列表
        """
        sample = self._selectSample(points, sample, sample_number)
        if len(sample) < self.sampleSize():
            raise EstimationFailure(f"At least {self.sampleSize()} points are required, got {len(sample)}")

        data = points[sample]
        source = data[:, 0:3]
        destination = data[:, 3:6]

        if weights is None:
            sample_weights = np.ones(len(sample))
        else:
            sample_weights = np.asarray(weights, dtype=np.float64)[sample]
        total_weight = np.sum(sample_weights)
        if total_weight <= 0.0:
            raise EstimationFailure("Sample weights must not all be zero")
        sample_weights = sample_weights / total_weight

        # 质心
        source_centroid = np.dot(sample_weights, source)
        destination_centroid = np.dot(sample_weights, destination)
        centered_source = source - source_centroid
        centered_destination = destination - destination_centroid

        # 输入点共线或重合时旋转不可确定
        source_singular_values = np.linalg.svd(centered_source, compute_uv=False)
        if self._numericalRank(source_singular_values) < 2:
            raise EstimationFailure("Input points are collinear or coincident")

        covariance = np.dot((centered_source * sample_weights[:, np.newaxis]).T, centered_destination)
        try:
            U, _, Vt = np.linalg.svd(covariance)
        except np.linalg.LinAlgError as e:
            raise EstimationFailure("SVD of the cross covariance did not converge") from e

        # 修正反射，保证 det(R) = 1
        reflection = np.eye(3)
        reflection[2, 2] = np.sign(np.linalg.det(np.dot(Vt.T, U.T))) or 1.0
        rotation = np.dot(np.dot(Vt.T, reflection), U.T)
        translation = destination_centroid - np.dot(rotation, source_centroid)

        if not np.all(np.isfinite(rotation)) or not np.all(np.isfinite(translation)):
            raise EstimationFailure("Non-finite rigid transformation")
        return [EuclideanTransformation3D(rotation, translation)]
