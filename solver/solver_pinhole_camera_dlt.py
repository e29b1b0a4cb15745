import numpy as np

from model import PinholeCamera
from solver.solver_engine import SolverEngine
from utils.exceptions import EstimationFailure
from utils.normalization import normalizingTransform


class SolverPinholeCameraDLT(SolverEngine):
    """ DLT（直接线性变换）求解针孔相机投影矩阵

    数据点集的每一行为 [X, Y, Z, x, y]：三维点及其图像投影。
    每对点贡献两个方程，投影矩阵 P 的 12 个元素构成线性系统的零空间。
    """

    MIN_NUMBER_OF_POINT_CORRESPONDENCES = 6
    # 最小样本下线性系统的期望秩（12 个未知数，相差一个尺度）
    EXPECTED_RANK = 11

    def __init__(self, normalize=True, allow_lmse=False):
        super().__init__()
        # 求解前是否归一化点坐标
        self.normalize = normalize
        # 点数多于最小样本时是否使用全部点的最小二乘解
        self.allow_lmse = allow_lmse

    def sampleSize(self):
        """ 模型参数估计所需的最小样本数 """
        return self.MIN_NUMBER_OF_POINT_CORRESPONDENCES

    def estimateModel(self,
                      points,
                      sample,
                      sample_number=None,
                      weights=None):
        """ 从给定的样本点，加权拟合投影矩阵

        参数
        ----------
        points : numpy
            输入的数据点集 (N, 5)
        sample : list
            用于估计模型的样本点序号列表，None 表示使用全部点
        sample_number : int 可选
            样本点的数目
        weights : numpy 可选
            数据点集中点的对应权重

        返回
        ----------
        list(PinholeCamera)
            通过样本估计的模型列表
        """
        sample = self._selectSample(points, sample, sample_number)
        if len(sample) < self.sampleSize():
            raise EstimationFailure(f"DLT needs at least {self.sampleSize()} correspondences, got {len(sample)}")
        # 不允许 LMSE 解时只使用前 6 个点
        if not self.allow_lmse:
            sample = sample[:self.sampleSize()]

        data = points[sample]
        points3D = data[:, 0:3]
        points2D = data[:, 3:5]

        ''' 1. 归一化 '''
        if self.normalize:
            try:
                points3D, transform3D = normalizingTransform(points3D)
                points2D, transform2D = normalizingTransform(points2D)
            except ValueError as e:
                raise EstimationFailure(str(e)) from e
        else:
            transform3D = np.eye(4)
            transform2D = np.eye(3)

        ''' 2. 构造线性系统 A p = 0 '''
        sample_number = len(sample)
        homogeneous3D = np.c_[points3D, np.ones(sample_number)]
        coefficients = np.zeros([2 * sample_number, 12])
        # [0^T, -X^T, y X^T]
        coefficients[0::2, 4:8] = -homogeneous3D
        coefficients[0::2, 8:12] = points2D[:, 1:2] * homogeneous3D
        # [X^T, 0^T, -x X^T]
        coefficients[1::2, 0:4] = homogeneous3D
        coefficients[1::2, 8:12] = -points2D[:, 0:1] * homogeneous3D

        if weights is not None:
            sample_weights = np.asarray(weights, dtype=np.float64)[sample]
            coefficients *= np.repeat(sample_weights, 2)[:, np.newaxis]

        ''' 3. SVD 求零空间 '''
        try:
            _, singular_values, Vt = np.linalg.svd(coefficients)
        except np.linalg.LinAlgError as e:
            raise EstimationFailure("SVD of the DLT system did not converge") from e

        # 共面点或重复点会使系统的秩低于 11
        if self._numericalRank(singular_values) < self.EXPECTED_RANK:
            raise EstimationFailure("Degenerate point configuration for DLT")

        normalized_matrix = Vt[-1].reshape((3, 4))

        ''' 4. 反归一化 '''
        matrix = np.dot(np.dot(np.linalg.inv(transform2D), normalized_matrix), transform3D)
        if not np.all(np.isfinite(matrix)):
            raise EstimationFailure("DLT produced a non-finite camera matrix")
        camera = PinholeCamera(matrix).normalize()
        left = camera.descriptor[:, 0:3]
        if abs(np.linalg.det(left)) < np.finfo(np.float64).eps:
            raise EstimationFailure("DLT produced a camera with a singular left 3x3 block")
        return [camera]
