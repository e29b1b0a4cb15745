import logging

import numpy as np
from scipy.optimize import approx_fprime, least_squares

from utils.exceptions import EstimationFailure

logger = logging.getLogger(__name__)


class Refiner:
    """ 在内点上用非线性最小二乘优化鲁棒估计得到的模型

    残差向量由三部分组成：内点的分量残差，固定参数化尺度的约束残差，
    以及 sqrt(w) * (target - current) 形式的建议残差。
    """

    # 快速模式下每个参数允许的最大函数计算次数
    FAST_EVALUATIONS_PER_PARAMETER = 10
    # 完整模式的收敛容差
    FULL_TOLERANCE = 1e-12
    # 判定 J^T J 数值秩的相对容差
    RANK_TOLERANCE = 1e-12

    def __init__(self,
                 estimator,
                 model,
                 data,
                 inliers_data,
                 standard_deviation,
                 keep_covariance=False,
                 use_fast_refinement=False,
                 suggestions=None):
        """ 初始化优化器

        参数
        ----------
        estimator : Estimator
            模型估计器，提供残差和参数化
        model : Model
            鲁棒估计得到的初始模型
        data : numpy
            全部数据点集
        inliers_data : InliersData
            初始模型的内点信息，优化只使用其中的内点
        standard_deviation : float
            残差的标准差，用于计算协方差
        keep_covariance : bool 可选
            是否计算参数协方差
        use_fast_refinement : bool 可选
            使用前向差分和有限的迭代次数，不计算协方差
        suggestions : SuggestionConfig 可选
            建议值配置
        """
        self.estimator = estimator
        self.initial_model = model
        self.data = data[inliers_data.inliers]
        self.standard_deviation = standard_deviation
        self.keep_covariance = keep_covariance
        self.use_fast_refinement = use_fast_refinement
        self.suggestions = suggestions

        self.model = model          # 优化后的模型
        self.covariance = None      # 参数协方差
        self.improved = False       # 优化是否降低了误差

    def refine(self):
        """ 执行优化，失败或没有改进时返回初始模型

        返回
        ----------
        Model
            优化后的模型
        """
        self.model = self.initial_model
        self.covariance = None
        self.improved = False

        try:
            parameters = self.estimator.modelToParameters(self.initial_model)
            residual_number = self.__dataResiduals(parameters).size
        except (EstimationFailure, ValueError, np.linalg.LinAlgError) as e:
            logger.debug("Model could not be parameterized for refinement: %s", e)
            return self.model

        parameter_number = len(parameters)
        if residual_number < parameter_number:
            logger.debug("Not enough inliers to refine %d parameters", parameter_number)
            return self.model

        ''' 1. 只使用数据残差的优化 '''
        parameters, improved = self.__refinementStep(parameters, 0.0)
        self.improved = improved

        ''' 2. 逐步增大建议权重 '''
        if self.suggestions is not None and self.suggestions.isAnySuggestionEnabled():
            for weight in self.suggestions.suggestionWeights():
                parameters, improved = self.__refinementStep(parameters, weight)
                if not improved:
                    break
                self.improved = True

        if self.improved:
            try:
                self.model = self.estimator.parametersToModel(parameters)
            except (EstimationFailure, ValueError) as e:
                logger.debug("Refined parameters do not describe a valid model: %s", e)
                self.improved = False
                return self.model

        if self.keep_covariance and not self.use_fast_refinement:
            self.covariance = self.__covariance(parameters)
        return self.model

    def __refinementStep(self, parameters, weight):
        """ 给定建议权重进行一次优化，返回新参数和是否改进 """
        def cost(residuals):
            return 0.5 * float(np.dot(residuals, residuals))

        try:
            initial_cost = cost(self.__residuals(parameters, weight))
            if self.use_fast_refinement:
                result = least_squares(self.__residuals,
                                       parameters,
                                       jac='2-point',
                                       x_scale='jac',
                                       max_nfev=self.FAST_EVALUATIONS_PER_PARAMETER * len(parameters),
                                       args=(weight,))
            else:
                result = least_squares(self.__residuals,
                                       parameters,
                                       jac='3-point',
                                       x_scale='jac',
                                       ftol=self.FULL_TOLERANCE,
                                       xtol=self.FULL_TOLERANCE,
                                       gtol=self.FULL_TOLERANCE,
                                       args=(weight,))
        except (EstimationFailure, ValueError, np.linalg.LinAlgError) as e:
            logger.debug("Refinement step with weight %g failed: %s", weight, e)
            return parameters, False

        final_cost = cost(result.fun)
        if np.isfinite(final_cost) and final_cost < initial_cost:
            return result.x, True
        return parameters, False

    def __dataResiduals(self, parameters):
        model = self.estimator.parametersToModel(parameters)
        return np.r_[self.estimator.refinementResiduals(self.data, model),
                     self.estimator.gaugeResiduals(parameters)]

    def __residuals(self, parameters, weight):
        residuals = self.__dataResiduals(parameters)
        if weight > 0.0:
            suggestion_residuals = self.estimator.suggestionResiduals(parameters, self.suggestions)
            residuals = np.r_[residuals, np.sqrt(weight) * suggestion_residuals]
        return residuals

    def __covariance(self, parameters):
        """ sigma^2 (J^T J)^-1，J^T J 秩亏时返回 None """
        try:
            jacobian = approx_fprime(parameters, self.__dataResiduals)
        except (EstimationFailure, ValueError, np.linalg.LinAlgError) as e:
            logger.debug("Jacobian for covariance could not be computed: %s", e)
            return None
        jacobian = np.atleast_2d(jacobian)
        information = np.dot(jacobian.T, jacobian)
        if not np.all(np.isfinite(information)):
            return None
        singular_values = np.linalg.svd(information, compute_uv=False)
        if singular_values[-1] <= singular_values[0] * self.RANK_TOLERANCE:
            logger.debug("Normal equations are singular, covariance is not available")
            return None
        covariance = self.standard_deviation ** 2 * np.linalg.inv(information)
        return 0.5 * (covariance + covariance.T)
