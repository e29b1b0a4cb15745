import numpy as np


class SolverEngine:
    """ 模型参数求解器基类 """

    # 判定线性系统数值秩时使用的相对容差
    RANK_TOLERANCE = 1e-10

    def __init__(self):
        pass

    def sampleSize(self):
        """ 模型参数估计所需的最小样本数 """
        return 0

    def estimateModel(self,
                      points,
                      sample,
                      sample_number=None,
                      weights=None):
        """ 从给定的样本点，加权拟合模型参数，样本退化时抛出 EstimationFailure """
        raise NotImplementedError

    def _selectSample(self, points, sample, sample_number):
        """ 取出参与求解的样本序号，sample 为 None 时使用全部点 """
        if sample is None:
            sample = np.arange(np.shape(points)[0])
        sample = np.asarray(sample, dtype=int)
        if sample_number is not None:
            sample = sample[:sample_number]
        return sample

    def _numericalRank(self, singular_values):
        """ 根据奇异值计算数值秩 """
        if len(singular_values) == 0 or singular_values[0] <= 0.0:
            return 0
        return int(np.sum(singular_values > singular_values[0] * self.RANK_TOLERANCE))
