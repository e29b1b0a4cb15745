import copy

import numpy as np


class SuggestionConfig:
    """ 相机参数的软约束建议值

    每个建议值有一个启用标志和一个目标值，优化时以逐步增大的权重
    把参数拉向目标值：权重从 min_suggestion_weight 开始，
    每次增加 suggestion_weight_step，直到 max_suggestion_weight。
    """

    DEFAULT_MIN_SUGGESTION_WEIGHT = 0.1
    DEFAULT_MAX_SUGGESTION_WEIGHT = 2.0
    DEFAULT_SUGGESTION_WEIGHT_STEP = 0.475

    def __init__(self):
        # 倾斜系数
        self.skewness_value_suggestion_enabled = False
        self.suggested_skewness_value = 0.0
        # 水平焦距
        self.horizontal_focal_length_suggestion_enabled = False
        self.suggested_horizontal_focal_length_value = 0.0
        # 垂直焦距
        self.vertical_focal_length_suggestion_enabled = False
        self.suggested_vertical_focal_length_value = 0.0
        # 纵横比 fy / fx
        self.aspect_ratio_suggestion_enabled = False
        self.suggested_aspect_ratio_value = 1.0
        # 主点
        self.principal_point_suggestion_enabled = False
        self.suggested_principal_point_value = np.zeros(2)
        # 相机旋转，四元数 (a, b, c, d)
        self.rotation_suggestion_enabled = False
        self.suggested_rotation_value = None
        # 相机中心
        self.center_suggestion_enabled = False
        self.suggested_center_value = None

        # 权重递增方案
        self.min_suggestion_weight = self.DEFAULT_MIN_SUGGESTION_WEIGHT
        self.max_suggestion_weight = self.DEFAULT_MAX_SUGGESTION_WEIGHT
        self.suggestion_weight_step = self.DEFAULT_SUGGESTION_WEIGHT_STEP

    def isAnySuggestionEnabled(self):
        return (self.skewness_value_suggestion_enabled or
                self.horizontal_focal_length_suggestion_enabled or
                self.vertical_focal_length_suggestion_enabled or
                self.aspect_ratio_suggestion_enabled or
                self.principal_point_suggestion_enabled or
                self.rotation_suggestion_enabled or
                self.center_suggestion_enabled)

    def isReady(self):
        """ 启用的旋转和中心建议必须给出目标值 """
        if self.rotation_suggestion_enabled and self.suggested_rotation_value is None:
            return False
        if self.center_suggestion_enabled and self.suggested_center_value is None:
            return False
        return True

    def suggestionWeights(self):
        """ 依次使用的建议权重 """
        weights = [self.min_suggestion_weight]
        # 容差避免累加误差多出一个恰好等于最大值的权重
        limit = self.max_suggestion_weight - 1e-9 * max(1.0, abs(self.max_suggestion_weight))
        while weights[-1] + self.suggestion_weight_step < limit:
            weights.append(weights[-1] + self.suggestion_weight_step)
        return weights

    def copy(self):
        return copy.deepcopy(self)
