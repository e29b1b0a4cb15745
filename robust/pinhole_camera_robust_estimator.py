import numpy as np

from estimator import EstimatorPinholeCamera
from model import rotationToQuaternion
from refiner import SuggestionConfig
from utils.exceptions import PreconditionError
from utils.normalization import toInhomogeneous

from .robust_estimator import RobustEstimator


class PinholeCameraRobustEstimator(RobustEstimator):
    """ 由三维点和其二维投影鲁棒估计针孔相机（DLT）

    优化时可以加入相机参数的建议值（倾斜系数，焦距，纵横比，主点，旋转，中心），
    协方差（保留时）为 12x12：倾斜系数，水平焦距，垂直焦距，主点 (2)，四元数 (4)，中心 (3)。
    """

    DEFAULT_THRESHOLD = 1.0
    DEFAULT_STOP_THRESHOLD = 1.0

    def __init__(self,
                 points3D=None,
                 points2D=None,
                 quality_scores=None,
                 method=None,
                 listener=None,
                 normalize=True,
                 allow_lmse=False,
                 **kwargs):
        """ 初始化针孔相机鲁棒估计器

        参数
        ----------
        points3D : numpy 可选
            (N, 3) 非齐次或 (N, 4) 齐次三维点
        points2D : numpy 可选
            (N, 2) 非齐次或 (N, 3) 齐次的图像投影点
        quality_scores : numpy 可选
            每个点对的质量得分
        method : RobustEstimatorMethod 可选
            鲁棒估计方法，默认 PROMedS
        listener : RobustEstimatorListener 可选
            估计过程的监听器
        normalize : bool 可选
            DLT 求解前是否归一化点坐标
        allow_lmse : bool 可选
            DLT 是否允许使用多于 6 个点的 LMSE 解
        **kwargs
            其他设置，如 threshold, confidence, max_iterations
        """
        super().__init__(EstimatorPinholeCamera(normalize=normalize, allow_lmse=allow_lmse),
                         method=method,
                         listener=listener)
        self.suggestions = SuggestionConfig()
        self._configure(**kwargs)
        if points3D is not None or points2D is not None:
            self.setPoints(points3D, points2D)
        if quality_scores is not None:
            self.setQualityScores(quality_scores)

    def setPoints(self, points3D, points2D):
        """ 设置三维点和对应的二维投影点，两者长度必须相同 """
        self._checkNotLocked()
        if points3D is None or points2D is None:
            raise PreconditionError("Both 3D points and 2D points are required")
        try:
            points3D = toInhomogeneous(points3D, 3)
            points2D = toInhomogeneous(points2D, 2)
        except ValueError as e:
            raise PreconditionError(str(e)) from e
        if len(points3D) != len(points2D):
            raise PreconditionError("3D points and 2D points must have the same length")
        self._setPoints(np.c_[points3D, points2D])

    def getPoints3D(self):
        return None if self.points is None else self.points[:, 0:3]

    def getPoints2D(self):
        return None if self.points is None else self.points[:, 3:5]

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

    def isReady(self):
        return super().isReady() and self.suggestions.isReady()

    def _getSuggestions(self):
        if not self.suggestions.isAnySuggestionEnabled():
            return None
        return self.suggestions.copy()

    ''' 建议值设置 '''
    def isSuggestSkewnessValueEnabled(self):
        return self.suggestions.skewness_value_suggestion_enabled

    def setSuggestSkewnessValueEnabled(self, enabled):
        self._checkNotLocked()
        self.suggestions.skewness_value_suggestion_enabled = bool(enabled)

    def getSuggestedSkewnessValue(self):
        return self.suggestions.suggested_skewness_value

    def setSuggestedSkewnessValue(self, value):
        self._checkNotLocked()
        self.suggestions.suggested_skewness_value = float(value)

    def isSuggestHorizontalFocalLengthEnabled(self):
        return self.suggestions.horizontal_focal_length_suggestion_enabled

    def setSuggestHorizontalFocalLengthEnabled(self, enabled):
        self._checkNotLocked()
        self.suggestions.horizontal_focal_length_suggestion_enabled = bool(enabled)

    def getSuggestedHorizontalFocalLengthValue(self):
        return self.suggestions.suggested_horizontal_focal_length_value

    def setSuggestedHorizontalFocalLengthValue(self, value):
        self._checkNotLocked()
        self.suggestions.suggested_horizontal_focal_length_value = float(value)

    def isSuggestVerticalFocalLengthEnabled(self):
        return self.suggestions.vertical_focal_length_suggestion_enabled

    def setSuggestVerticalFocalLengthEnabled(self, enabled):
        self._checkNotLocked()
        self.suggestions.vertical_focal_length_suggestion_enabled = bool(enabled)

    def getSuggestedVerticalFocalLengthValue(self):
        return self.suggestions.suggested_vertical_focal_length_value

    def setSuggestedVerticalFocalLengthValue(self, value):
        self._checkNotLocked()
        self.suggestions.suggested_vertical_focal_length_value = float(value)

    def isSuggestAspectRatioEnabled(self):
        return self.suggestions.aspect_ratio_suggestion_enabled

    def setSuggestAspectRatioEnabled(self, enabled):
        self._checkNotLocked()
        self.suggestions.aspect_ratio_suggestion_enabled = bool(enabled)

    def getSuggestedAspectRatioValue(self):
        return self.suggestions.suggested_aspect_ratio_value

    def setSuggestedAspectRatioValue(self, value):
        self._checkNotLocked()
        self.suggestions.suggested_aspect_ratio_value = float(value)

    def isSuggestPrincipalPointEnabled(self):
        return self.suggestions.principal_point_suggestion_enabled

    def setSuggestPrincipalPointEnabled(self, enabled):
        self._checkNotLocked()
        self.suggestions.principal_point_suggestion_enabled = bool(enabled)

    def getSuggestedPrincipalPointValue(self):
        return self.suggestions.suggested_principal_point_value

    def setSuggestedPrincipalPointValue(self, value):
        self._checkNotLocked()
        value = np.array(value, dtype=np.float64).reshape(-1)
        if len(value) != 2:
            raise PreconditionError("Principal point must have two coordinates")
        self.suggestions.suggested_principal_point_value = value

    def isSuggestRotationEnabled(self):
        return self.suggestions.rotation_suggestion_enabled

    def setSuggestRotationEnabled(self, enabled):
        self._checkNotLocked()
        self.suggestions.rotation_suggestion_enabled = bool(enabled)

    def getSuggestedRotationValue(self):
        """ 建议的相机旋转，四元数 (a, b, c, d) """
        return self.suggestions.suggested_rotation_value

    def setSuggestedRotationValue(self, value):
        """ 设置建议的相机旋转，可以是 3x3 旋转矩阵或四元数 (a, b, c, d) """
        self._checkNotLocked()
        value = np.array(value, dtype=np.float64)
        if value.shape == (3, 3):
            value = rotationToQuaternion(value)
        elif value.shape != (4,) or np.linalg.norm(value) == 0.0:
            raise PreconditionError("Rotation must be a 3x3 matrix or a non-zero quaternion")
        self.suggestions.suggested_rotation_value = value / np.linalg.norm(value)

    def isSuggestCenterEnabled(self):
        return self.suggestions.center_suggestion_enabled

    def setSuggestCenterEnabled(self, enabled):
        self._checkNotLocked()
        self.suggestions.center_suggestion_enabled = bool(enabled)

    def getSuggestedCenterValue(self):
        return self.suggestions.suggested_center_value

    def setSuggestedCenterValue(self, value):
        self._checkNotLocked()
        value = np.array(value, dtype=np.float64).reshape(-1)
        if len(value) != 3:
            raise PreconditionError("Camera center must have three coordinates")
        self.suggestions.suggested_center_value = value

    ''' 建议权重 '''
    def getMinSuggestionWeight(self):
        return self.suggestions.min_suggestion_weight

    def getMaxSuggestionWeight(self):
        return self.suggestions.max_suggestion_weight

    def setMinMaxSuggestionWeight(self, min_suggestion_weight, max_suggestion_weight):
        self._checkNotLocked()
        if not min_suggestion_weight < max_suggestion_weight:
            raise PreconditionError("Minimum suggestion weight must be smaller than the maximum")
        self.suggestions.min_suggestion_weight = float(min_suggestion_weight)
        self.suggestions.max_suggestion_weight = float(max_suggestion_weight)

    def setMinSuggestionWeight(self, weight):
        self.setMinMaxSuggestionWeight(weight, self.suggestions.max_suggestion_weight)

    def setMaxSuggestionWeight(self, weight):
        self.setMinMaxSuggestionWeight(self.suggestions.min_suggestion_weight, weight)

    def getSuggestionWeightStep(self):
        return self.suggestions.suggestion_weight_step

    def setSuggestionWeightStep(self, step):
        self._checkNotLocked()
        if not step > 0.0:
            raise PreconditionError("Suggestion weight step must be greater than zero")
        self.suggestions.suggestion_weight_step = float(step)
