import numpy as np

from utils.inliers_data import InliersData


class Score:
    """ 模型评估得分，value 越大越好，value 相同时内点残差和越小越好 """

    def __init__(self, inlier_number=0, value=-np.inf, residual_sum=np.inf):
        self.inlier_number = inlier_number   # 内点数目
        self.value = value                   # 得分
        self.residual_sum = residual_sum     # 内点残差和

    def __lt__(self, v):
        if self.value != v.value:
            return self.value < v.value
        return self.residual_sum > v.residual_sum

    def __gt__(self, v):
        return v < self

    def __eq__(self, v):
        return self.value == v.value and self.residual_sum == v.residual_sum

    def __repr__(self):
        return f"Score(inlier_number={self.inlier_number}, value={self.value:g}, residual_sum={self.residual_sum:g})"


class RansacScoringFunction:
    """ RANSAC 评分：残差不超过阈值的点数 """

    is_median_based = False

    def __init__(self):
        self.threshold = 0.0
        self.point_number = 0
        self.sample_size = 0

    def initialize(self, threshold, point_number, sample_size):
        self.threshold = threshold
        self.point_number = point_number
        self.sample_size = sample_size

    def getScore(self, residuals):
        """ 求解模型对应的评估得分

        参数
        ----------
        residuals : numpy
            所有点对当前模型的残差

        返回
        ----------
        Score
            当前模型参数的评估得分
        """
        inliers = residuals <= self.threshold
        score = Score()
        score.inlier_number = int(np.count_nonzero(inliers))
        score.value = float(score.inlier_number)
        score.residual_sum = float(np.sum(residuals[inliers]))
        return score

    def inlierNumber(self, score):
        """ 用于计算迭代次数的内点数目 """
        return score.inlier_number

    def isGoodEnough(self, score):
        """ 是否可以提前结束迭代，阈值类方法只依赖迭代次数 """
        return False

    def getInliersData(self, residuals):
        return InliersData(residuals <= self.threshold, residuals, self.threshold)


class MSACScoringFunction(RansacScoringFunction):
    """ MSAC 评分：截断二次损失 """

    def getScore(self, residuals):
        squared_threshold = self.threshold ** 2
        inliers = residuals <= self.threshold
        score = Score()
        score.inlier_number = int(np.count_nonzero(inliers))
        # 加分: 原始截断二次损失如下：1 - 残差^2/阈值^2
        score.value = float(np.sum(1.0 - residuals[inliers] ** 2 / squared_threshold))
        score.residual_sum = float(np.sum(residuals[inliers]))
        return score


class MedianScoringFunction:
    """ LMedS / PROMedS 评分：残差中值越小越好 """

    is_median_based = True

    # 中值到标准差的换算系数
    MEDIAN_TO_STANDARD_DEVIATION = 1.4826
    DEFAULT_INLIER_FACTOR = 1.5

    def __init__(self, inlier_factor=DEFAULT_INLIER_FACTOR, weights=None):
        self.stop_threshold = 0.0
        self.point_number = 0
        self.sample_size = 0
        self.inlier_factor = inlier_factor
        # 质量得分权重，为 None 时使用普通中值
        self.weights = weights

    def initialize(self, stop_threshold, point_number, sample_size):
        self.stop_threshold = stop_threshold
        self.point_number = point_number
        self.sample_size = sample_size

    def getScore(self, residuals):
        median = self.__median(residuals)
        threshold = self.inlierThreshold(median)
        inliers = residuals <= threshold

        score = Score()
        score.inlier_number = int(np.count_nonzero(inliers))
        score.value = -median
        score.residual_sum = float(np.sum(residuals[inliers]))
        score.median = median
        return score

    def estimatedThreshold(self, median):
        """ 根据残差中值估计的阈值 (Rousseeuw 的小样本修正) """
        dof = self.point_number - self.sample_size
        correction = 1.0 + 5.0 / dof if dof > 0 else 1.0
        standard_deviation = self.MEDIAN_TO_STANDARD_DEVIATION * correction * median
        return self.inlier_factor * standard_deviation

    def inlierThreshold(self, median):
        """ 判定内点的阈值，不小于停止阈值 """
        return max(self.estimatedThreshold(median), self.stop_threshold)

    def inlierNumber(self, score):
        return score.inlier_number

    def isGoodEnough(self, score):
        """ 估计阈值已经低于停止阈值时可以提前结束 """
        return self.estimatedThreshold(score.median) <= self.stop_threshold

    def getInliersData(self, residuals):
        median = self.__median(residuals)
        threshold = self.inlierThreshold(median)
        return InliersData(residuals <= threshold,
                           residuals,
                           threshold,
                           median=median,
                           estimated_threshold=self.estimatedThreshold(median))

    def __median(self, residuals):
        if self.weights is None:
            return float(np.median(residuals))
        # 加权中值：累计权重首次超过总权重一半的位置
        order = np.argsort(residuals, kind="stable")
        cumulative = np.cumsum(self.weights[order])
        position = int(np.searchsorted(cumulative, 0.5 * cumulative[-1]))
        return float(residuals[order[min(position, len(order) - 1)]])
