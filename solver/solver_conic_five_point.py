import numpy as np

from model import Conic
from solver.solver_engine import SolverEngine
from utils.exceptions import EstimationFailure
from utils.normalization import normalizingTransform


class SolverConicFivePoint(SolverEngine):
    """ 五点法求解二次曲线

    数据点集的每一行为曲线上的点 [x, y]，每个点给出方程
    a x^2 + b xy + c y^2 + d x + e y + f = 0。
    """

    MINIMUM_SIZE = 5

    def __init__(self, normalize=True, allow_lmse=False):
        super().__init__()
        # 求解前是否归一化点坐标
        self.normalize = normalize
        # 点数多于 5 时是否使用全部点的最小二乘解
        self.allow_lmse = allow_lmse

    def sampleSize(self):
        """ 模型参数估计所需的最小样本数 """
        return self.MINIMUM_SIZE

    def estimateModel(self,
                      points,
                      sample,
                      sample_number=None,
                      weights=None):
        """ 从给定的样本点，加权拟合二次曲线

        参数
        ----------
        points : numpy
            输入的数据点集 (N, 2)
        sample : list
            用于估计模型的样本点序号列表，None 表示使用全部点
        sample_number : int 可选
            样本点的数目
        weights : numpy 可选
            数据点集中点的对应权重

        返回
        ----------
        list(Conic)
            通过样本估计的模型列表
        """
        sample = self._selectSample(points, sample, sample_number)
        if len(sample) < self.MINIMUM_SIZE:
            raise EstimationFailure(f"At least {self.MINIMUM_SIZE} points are required, got {len(sample)}")
        if not self.allow_lmse:
            sample = sample[:self.MINIMUM_SIZE]

        ''' 1. 归一化 '''
        sample_points = points[sample, 0:2]
        if self.normalize:
            try:
                sample_points, transform = normalizingTransform(sample_points)
            except ValueError as e:
                raise EstimationFailure(str(e)) from e
        else:
            transform = np.eye(3)

        ''' 2. 构造线性系统并求零空间 '''
        x = sample_points[:, 0]
        y = sample_points[:, 1]
        coefficients = np.c_[x * x, x * y, y * y, x, y, np.ones(len(sample))]
        if weights is not None:
            coefficients *= np.asarray(weights, dtype=np.float64)[sample][:, np.newaxis]

        try:
            _, singular_values, Vt = np.linalg.svd(coefficients)
        except np.linalg.LinAlgError as e:
            raise EstimationFailure("SVD of the conic system did not converge") from e

        if self._numericalRank(singular_values) < 5:
            raise EstimationFailure("Degenerate point configuration for a conic")

        ''' 3. 反归一化 C = T^T C' T '''
        normalized_conic = Conic.fromCoefficients(Vt[-1])
        matrix = np.dot(np.dot(transform.T, normalized_conic.descriptor), transform)
        if not np.all(np.isfinite(matrix)) or np.linalg.norm(matrix) == 0.0:
            raise EstimationFailure("Non-finite conic")
        return [Conic(matrix).normalize()]
