import numpy as np


class InliersData:
    """ 最佳模型对应的内点信息

    每次 estimate() 成功后生成一份，之后不再修改。
    """

    def __init__(self, inliers, residuals, threshold, median=None, estimated_threshold=None):
        self._inliers = np.array(inliers, dtype=bool)
        self._inliers.flags.writeable = False
        self._residuals = np.array(residuals, dtype=np.float64)
        self._residuals.flags.writeable = False
        self._num_inliers = int(np.count_nonzero(self._inliers))
        self._threshold = float(threshold)
        self._median = median
        self._estimated_threshold = estimated_threshold

    @property
    def inliers(self):
        """ 内点 mask，True 表示内点 """
        return self._inliers

    @property
    def residuals(self):
        """ 每个数据点对最佳模型的残差 """
        return self._residuals

    @property
    def num_inliers(self):
        return self._num_inliers

    @property
    def threshold(self):
        """ 判定内点所用的阈值 """
        return self._threshold

    @property
    def median(self):
        """ 中值类方法的残差中值，其他方法为 None """
        return self._median

    @property
    def estimated_threshold(self):
        """ 中值类方法根据残差中值估计的阈值，其他方法为 None """
        return self._estimated_threshold

    def inlierIndices(self):
        return np.flatnonzero(self._inliers)

    def __repr__(self):
        return f"InliersData(num_inliers={self._num_inliers}, total={len(self._inliers)}, threshold={self._threshold:g})"
