import numpy as np

from estimator.estimator import Estimator
from model import (PinholeCamera, PinholeCameraIntrinsicParameters,
                   quaternionToRotation, rotationToQuaternion)
from solver import SolverPinholeCameraDLT


class EstimatorPinholeCamera(Estimator):
    """ 针孔相机估计器，数据点集每一行为 [X, Y, Z, x, y]

    优化参数（12 个）依次为：
    倾斜系数，水平焦距，垂直焦距，水平主点，垂直主点，四元数 (a, b, c, d)，相机中心 (3)
    """

    PARAMETER_NUMBER = 12

    def __init__(self, normalize=True, allow_lmse=False):
        super().__init__(SolverPinholeCameraDLT(normalize=normalize, allow_lmse=allow_lmse))

    def isNormalizationEnabled(self):
        return self.solver.normalize

    def setNormalizationEnabled(self, enabled):
        self.solver.normalize = bool(enabled)

    def isLMSESolutionAllowed(self):
        return self.solver.allow_lmse

    def setLMSESolutionAllowed(self, allowed):
        self.solver.allow_lmse = bool(allowed)

    def __projectionErrors(self, data, model):
        projected = model.project(data[:, 0:3])
        return projected - data[:, 3:5]

    def residual(self, data, model):
        """ 重投影误差（像素距离），投影到无穷远的点误差为无穷大 """
        errors = np.sqrt(np.sum(self.__projectionErrors(data, model) ** 2, axis=1))
        return np.where(np.isfinite(errors), errors, np.inf)

    def refinementResiduals(self, data, model):
        return self.__projectionErrors(data, model).ravel()

    def modelToParameters(self, model):
        intrinsic, rotation, center = model.decompose()
        return np.r_[intrinsic.skewness,
                     intrinsic.horizontal_focal_length,
                     intrinsic.vertical_focal_length,
                     intrinsic.horizontal_principal_point,
                     intrinsic.vertical_principal_point,
                     rotationToQuaternion(rotation),
                     center]

    def parametersToModel(self, parameters):
        intrinsic = PinholeCameraIntrinsicParameters(horizontal_focal_length=parameters[1],
                                                     vertical_focal_length=parameters[2],
                                                     horizontal_principal_point=parameters[3],
                                                     vertical_principal_point=parameters[4],
                                                     skewness=parameters[0])
        rotation = quaternionToRotation(parameters[5:9])
        return PinholeCamera.fromParameters(intrinsic, rotation, parameters[9:12])

    def gaugeResiduals(self, parameters):
        """ 四元数模长为 1 """
        return np.array([np.linalg.norm(parameters[5:9]) - 1.0])

    def suggestionResiduals(self, parameters, suggestions):
        """ 每个启用的建议值贡献 (target - current) 残差

        参数
        ----------
        parameters : numpy
            当前的优化参数向量
        suggestions : SuggestionConfig
            建议值配置

        返回
        ----------
        numpy
            未加权的建议残差
        """
        if suggestions is None:
            return np.zeros(0)

        residuals = []
        skewness, fx, fy = parameters[0], parameters[1], parameters[2]
        if suggestions.skewness_value_suggestion_enabled:
            residuals.append(suggestions.suggested_skewness_value - skewness)
        if suggestions.horizontal_focal_length_suggestion_enabled:
            residuals.append(suggestions.suggested_horizontal_focal_length_value - fx)
        if suggestions.vertical_focal_length_suggestion_enabled:
            residuals.append(suggestions.suggested_vertical_focal_length_value - fy)
        if suggestions.aspect_ratio_suggestion_enabled:
            residuals.append(suggestions.suggested_aspect_ratio_value - fy / fx)
        if suggestions.principal_point_suggestion_enabled:
            residuals.extend(np.asarray(suggestions.suggested_principal_point_value) - parameters[3:5])
        if suggestions.rotation_suggestion_enabled:
            quaternion = parameters[5:9] / np.linalg.norm(parameters[5:9])
            target = np.asarray(suggestions.suggested_rotation_value, dtype=np.float64)
            target = target / np.linalg.norm(target)
            # q 与 -q 表示同一个旋转
            if np.dot(target, quaternion) < 0.0:
                target = -target
            residuals.extend(target - quaternion)
        if suggestions.center_suggestion_enabled:
            residuals.extend(np.asarray(suggestions.suggested_center_value) - parameters[9:12])
        return np.array(residuals, dtype=np.float64)
