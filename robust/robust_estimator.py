import logging
import math as m
import sys
from enum import Enum
from time import time

import numpy as np

from refiner import Refiner
from sampler import ProsacSampler, UniformSampler
from utils.exceptions import (EstimationFailure, LockedError, NotReadyError,
                              PreconditionError, RobustEstimatorError)
from utils.score import (MedianScoringFunction, MSACScoringFunction,
                         RansacScoringFunction, Score)
from utils.uniform_random_generator import UniformRandomGenerator

logger = logging.getLogger(__name__)


class RobustEstimatorMethod(Enum):
    """ 鲁棒估计方法，每种方法对应一个评分函数和一个采样器 """

    RANSAC = "ransac"
    MSAC = "msac"
    LMEDS = "lmeds"
    PROSAC = "prosac"
    PROMEDS = "promeds"

    def isMedianBased(self):
        return self in (RobustEstimatorMethod.LMEDS, RobustEstimatorMethod.PROMEDS)

    def requiresQualityScores(self):
        return self in (RobustEstimatorMethod.PROSAC, RobustEstimatorMethod.PROMEDS)


class _Settings:

    def __init__(self, threshold, stop_threshold):
        self.threshold = threshold                       # 决定内点和外点的阈值 (RANSAC, MSAC, PROSAC)
        self.stop_threshold = stop_threshold             # 中值类方法提前结束的阈值 (LMedS, PROMedS)
        self.confidence = 0.99                           # 结果的置信率
        self.max_iterations = 5000                       # 全局最大迭代次数
        self.progress_delta = 0.05                       # 进度通知的最小变化量

        self.refine_result = True                        # 是否在内点上优化结果
        self.keep_covariance = False                     # 是否计算优化后参数的协方差
        self.use_fast_refinement = False                 # 是否使用快速优化
        self.max_iterations_failure_enabled = False      # 达到最大迭代次数仍未收敛时是否报错
        self.quality_weighted_median = False             # PROMedS 是否使用质量加权中值
        self.inlier_factor = MedianScoringFunction.DEFAULT_INLIER_FACTOR
        self.seed = None                                 # 随机数种子


class _Statistics:

    def __init__(self):
        self.iteration_number = 0                # 总迭代次数
        self.degenerate_sample_number = 0        # 退化（被跳过）的样本数
        self.better_model_number = 0             # 找到更优模型的次数
        self.processing_time = 0.0               # 估计耗时（秒）


class RobustEstimator:
    """ 鲁棒估计器（一致性估计引擎）

    对任何提供 Estimator 接口的模型，组合一个评分函数和一个采样器运行
    采样-拟合-评分-选择的迭代过程，迭代次数根据当前最佳内点率自适应调整，
    最后可在内点上做非线性优化。

    estimate() 运行期间估计器处于锁定状态，所有修改设置的函数
    （包括在监听器回调中调用）都会抛出 LockedError。
    """

    DEFAULT_THRESHOLD = 1.0
    DEFAULT_STOP_THRESHOLD = 1.0
    DEFAULT_METHOD = RobustEstimatorMethod.PROMEDS

    def __init__(self,
                 estimator,
                 method=None,
                 listener=None,
                 quality_scores=None):
        """ 初始化鲁棒估计器

        参数
        ----------
        estimator : Estimator
            模型估计器
        method : RobustEstimatorMethod 可选
            鲁棒估计方法，默认 PROMedS
        listener : RobustEstimatorListener 可选
            估计过程的监听器
        quality_scores : numpy 可选
            每个数据点的质量得分
        """
        self.settings = _Settings(self.DEFAULT_THRESHOLD, self.DEFAULT_STOP_THRESHOLD)
        self.statistics = _Statistics()

        self.estimator = estimator
        self.method = self.DEFAULT_METHOD if method is None else RobustEstimatorMethod(method)
        self.listener = listener
        self.points = None                 # 打包后的数据点集 (N, k)
        self.quality_scores = None

        self.locked = False                # 是否正在估计
        self.inliers_data = None           # 最近一次估计的内点信息
        self.covariance = None             # 最近一次估计的参数协方差
        self.converged = False             # 最近一次估计是否达到置信率

        if quality_scores is not None:
            self.setQualityScores(quality_scores)

    ''' 配置函数 '''
    def _configure(self, **kwargs):
        """ 构造函数的关键字参数通过对应的 setter 设置，保证同样的检查 """
        setters = {
            "threshold": self.setThreshold,
            "stop_threshold": self.setStopThreshold,
            "confidence": self.setConfidence,
            "max_iterations": self.setMaxIterations,
            "progress_delta": self.setProgressDelta,
            "refine_result": self.setResultRefined,
            "keep_covariance": self.setCovarianceKept,
            "use_fast_refinement": self.setFastRefinementUsed,
            "weak_minimum_size_allowed": self.setWeakMinimumSizeAllowed,
            "max_iterations_failure_enabled": self.setMaxIterationsFailureEnabled,
            "quality_weighted_median": self.setQualityWeightedMedianUsed,
            "seed": self.setSeed,
        }
        for name, value in kwargs.items():
            if name not in setters:
                raise TypeError(f"Unexpected keyword argument '{name}'")
            setters[name](value)

    def _checkNotLocked(self):
        if self.locked:
            raise LockedError()

    def isLocked(self):
        return self.locked

    def getMethod(self):
        return self.method

    def setMethod(self, method):
        self._checkNotLocked()
        self.method = RobustEstimatorMethod(method)

    def getListener(self):
        return self.listener

    def setListener(self, listener):
        self._checkNotLocked()
        self.listener = listener

    def getQualityScores(self):
        return self.quality_scores

    def setQualityScores(self, quality_scores):
        """ 设置每个数据点的质量得分，PROSAC 和 PROMedS 需要 """
        self._checkNotLocked()
        if quality_scores is None:
            self.quality_scores = None
            return
        quality_scores = np.array(quality_scores, dtype=np.float64)
        if quality_scores.ndim != 1:
            raise PreconditionError("Quality scores must be a one dimensional sequence")
        if len(quality_scores) < self.getMinimumSize():
            raise PreconditionError(f"At least {self.getMinimumSize()} quality scores are required")
        if self.points is not None and len(quality_scores) != len(self.points):
            raise PreconditionError("Quality scores must have one value per correspondence")
        self.quality_scores = quality_scores

    def getThreshold(self):
        return self.settings.threshold

    def setThreshold(self, threshold):
        self._checkNotLocked()
        if not threshold > 0.0:
            raise PreconditionError("Threshold must be greater than zero")
        self.settings.threshold = float(threshold)

    def getStopThreshold(self):
        return self.settings.stop_threshold

    def setStopThreshold(self, stop_threshold):
        self._checkNotLocked()
        if not stop_threshold > 0.0:
            raise PreconditionError("Stop threshold must be greater than zero")
        self.settings.stop_threshold = float(stop_threshold)

    def getConfidence(self):
        return self.settings.confidence

    def setConfidence(self, confidence):
        self._checkNotLocked()
        if not 0.0 <= confidence <= 1.0:
            raise PreconditionError("Confidence must be between 0 and 1")
        self.settings.confidence = float(confidence)

    def getMaxIterations(self):
        return self.settings.max_iterations

    def setMaxIterations(self, max_iterations):
        self._checkNotLocked()
        if max_iterations < 1:
            raise PreconditionError("Maximum number of iterations must be at least 1")
        self.settings.max_iterations = int(max_iterations)

    def getProgressDelta(self):
        return self.settings.progress_delta

    def setProgressDelta(self, progress_delta):
        self._checkNotLocked()
        if not 0.0 <= progress_delta <= 1.0:
            raise PreconditionError("Progress delta must be between 0 and 1")
        self.settings.progress_delta = float(progress_delta)

    def isResultRefined(self):
        return self.settings.refine_result

    def setResultRefined(self, refine_result):
        self._checkNotLocked()
        self.settings.refine_result = bool(refine_result)

    def isCovarianceKept(self):
        return self.settings.keep_covariance

    def setCovarianceKept(self, keep_covariance):
        self._checkNotLocked()
        self.settings.keep_covariance = bool(keep_covariance)

    def isFastRefinementUsed(self):
        return self.settings.use_fast_refinement

    def setFastRefinementUsed(self, use_fast_refinement):
        self._checkNotLocked()
        self.settings.use_fast_refinement = bool(use_fast_refinement)

    def isWeakMinimumSizeAllowed(self):
        return self.estimator.isWeakMinimumSizeAllowed()

    def setWeakMinimumSizeAllowed(self, allowed):
        self._checkNotLocked()
        self.estimator.setWeakMinimumSizeAllowed(allowed)

    def isMaxIterationsFailureEnabled(self):
        return self.settings.max_iterations_failure_enabled

    def setMaxIterationsFailureEnabled(self, enabled):
        """ 达到最大迭代次数仍未达到置信率时，estimate() 是否抛出 RobustEstimatorError """
        self._checkNotLocked()
        self.settings.max_iterations_failure_enabled = bool(enabled)

    def isQualityWeightedMedianUsed(self):
        return self.settings.quality_weighted_median

    def setQualityWeightedMedianUsed(self, used):
        """ PROMedS 是否用质量得分加权求残差中值 """
        self._checkNotLocked()
        self.settings.quality_weighted_median = bool(used)

    def getSeed(self):
        return self.settings.seed

    def setSeed(self, seed):
        """ 设置采样的随机数种子，None 表示每次估计使用新的随机状态 """
        self._checkNotLocked()
        self.settings.seed = seed

    def getMinimumSize(self):
        """ 当前设置下需要的最少对应点数 """
        return self.estimator.sampleSize()

    def _setPoints(self, points):
        """ 设置打包后的数据点集，由具体模型的估计器调用 """
        self._checkNotLocked()
        if len(points) < self.getMinimumSize():
            raise PreconditionError(f"At least {self.getMinimumSize()} correspondences are required, "
                                    f"got {len(points)}")
        self.points = points

    ''' 结果 '''
    def getInliersData(self):
        return self.inliers_data

    def getCovariance(self):
        """ 优化后参数的协方差，未计算或法方程奇异时为 None """
        return self.covariance

    def isConverged(self):
        """ 最近一次估计是否在最大迭代次数内达到了置信率 """
        return self.converged

    def isReady(self):
        """ 数据是否足够开始估计 """
        if self.points is None or len(self.points) < self.getMinimumSize():
            return False
        if self.method.requiresQualityScores():
            if self.quality_scores is None or len(self.quality_scores) != len(self.points):
                return False
        return True

    ''' 模型估计函数 '''
    def estimate(self):
        """ 运行鲁棒估计

        返回
        ----------
        Model
            估计（并可能经过优化）的模型

        异常
        ----------
        LockedError
            估计器正在估计
        NotReadyError
            数据未准备好
        RobustEstimatorError
            没有找到可靠的模型
        """
        self._checkNotLocked()
        if not self.isReady():
            raise NotReadyError("Estimator is not ready: correspondences or quality scores are missing "
                                "or do not match")

        self.locked = True
        try:
            start_time = time()
            self.statistics = _Statistics()
            self.inliers_data = None
            self.covariance = None
            self.converged = False

            self.__notify("onEstimateStart")
            model, inliers_data = self.__run()
            self.inliers_data = inliers_data

            if self.settings.refine_result:
                model = self.__refine(model, inliers_data)

            self.statistics.processing_time = time() - start_time
            self.__notify("onEstimateEnd")
            return model
        finally:
            self.locked = False

    def __run(self):
        """ 采样-拟合-评分-选择的主循环 """
        points = self.points
        point_number = np.shape(points)[0]
        sample_size = self.estimator.sampleSize()
        max_iterations = self.settings.max_iterations

        random_generator = UniformRandomGenerator(self.settings.seed)
        scoring_function = self.__createScoringFunction()
        if scoring_function.is_median_based:
            scoring_function.initialize(self.settings.stop_threshold, point_number, sample_size)
        else:
            scoring_function.initialize(self.settings.threshold, point_number, sample_size)
        main_sampler = self.__createSampler(points, sample_size, random_generator)

        # 记录全局的最佳模型，得分，残差
        so_far_the_best_model = None
        so_far_the_best_score = Score()
        so_far_the_best_residuals = None

        # 初始化采样池
        pool = np.arange(point_number)

        # 找到第一个模型之前，迭代次数上限为最大迭代次数
        iteration_bound = sys.maxsize
        last_notified_progress = 0.0
        good_enough = False

        while self.statistics.iteration_number < min(iteration_bound, max_iterations):
            self.statistics.iteration_number += 1
            self.__notify("onEstimateNextIteration", self.statistics.iteration_number)

            # 采样并检查样本是否有效
            sample = main_sampler.sample(pool, sample_size)
            if len(sample) < sample_size or not self.estimator.isValidSample(points, sample):
                self.statistics.degenerate_sample_number += 1
                continue

            # 用样本估计模型，退化样本跳过
            try:
                models = self.estimator.estimateModel(points, sample)
            except EstimationFailure as e:
                logger.debug("Skipping degenerate sample %s: %s", sample, e)
                self.statistics.degenerate_sample_number += 1
                continue

            for model in models:
                residuals = self.estimator.residual(points, model)
                residuals = np.where(np.isnan(residuals), np.inf, residuals)
                score = scoring_function.getScore(residuals)

                if not self.estimator.isValidModel(model,
                                                   data=points,
                                                   minimal_sample=sample,
                                                   threshold=self.settings.threshold):
                    continue

                if so_far_the_best_score < score:
                    so_far_the_best_model = model
                    so_far_the_best_score = score
                    so_far_the_best_residuals = residuals
                    self.statistics.better_model_number += 1
                    # 更新最大迭代数
                    iteration_bound = self._tightenIterationBound(iteration_bound,
                                                                  scoring_function.inlierNumber(score),
                                                                  point_number,
                                                                  sample_size)

            progress = min(1.0, self.statistics.iteration_number / min(iteration_bound, max_iterations))
            if progress - last_notified_progress >= self.settings.progress_delta:
                last_notified_progress = progress
                self.__notify("onEstimateProgressChange", progress)

            if so_far_the_best_model is not None and scoring_function.isGoodEnough(so_far_the_best_score):
                good_enough = True
                break

        if so_far_the_best_model is None:
            raise RobustEstimatorError(f"No valid model was found after {self.statistics.iteration_number} "
                                       f"iterations ({self.statistics.degenerate_sample_number} degenerate samples)")

        self.converged = good_enough or self.statistics.iteration_number >= iteration_bound
        if not self.converged and self.settings.max_iterations_failure_enabled:
            raise RobustEstimatorError(f"Maximum number of iterations ({max_iterations}) reached "
                                       f"without reaching the requested confidence")

        inliers_data = scoring_function.getInliersData(so_far_the_best_residuals)
        if inliers_data.num_inliers < sample_size:
            raise RobustEstimatorError(f"Best model has only {inliers_data.num_inliers} inliers, "
                                       f"at least {sample_size} are required")
        return so_far_the_best_model, inliers_data

    def __refine(self, model, inliers_data):
        """ 在内点上优化模型，失败时返回原模型 """
        refiner = Refiner(self.estimator,
                          model,
                          self.points,
                          inliers_data,
                          inliers_data.threshold,
                          keep_covariance=self.settings.keep_covariance,
                          use_fast_refinement=self.settings.use_fast_refinement,
                          suggestions=self._getSuggestions())
        refined_model = refiner.refine()
        if not refiner.improved:
            logger.debug("Refinement did not improve the consensus model")
        self.covariance = refiner.covariance
        return refined_model

    def _getSuggestions(self):
        """ 优化时使用的建议值，默认没有 """
        return None

    def __createScoringFunction(self):
        if self.method == RobustEstimatorMethod.MSAC:
            return MSACScoringFunction()
        if self.method.isMedianBased():
            weights = None
            if self.method == RobustEstimatorMethod.PROMEDS and self.settings.quality_weighted_median:
                weights = np.clip(self.quality_scores, 0.0, None)
                if np.sum(weights) <= 0.0:
                    weights = None
            return MedianScoringFunction(inlier_factor=self.settings.inlier_factor, weights=weights)
        return RansacScoringFunction()

    def __createSampler(self, points, sample_size, random_generator):
        if self.method.requiresQualityScores():
            return ProsacSampler(points,
                                 sample_size,
                                 self.quality_scores,
                                 ransac_convergence_iterations=self.settings.max_iterations,
                                 random_generator=random_generator)
        return UniformSampler(points, random_generator)

    def __notify(self, event, *args):
        if self.listener is None:
            return
        getattr(self.listener, event)(self, *args)

    def _tightenIterationBound(self, iteration_bound, inlier_number, point_number, sample_size):
        """ 找到更优模型后更新迭代上限，上限只减不增

        MSAC 和中值类方法中，得分更高的模型内点数可能更少。
        """
        return min(iteration_bound, self.__getIterationNumber(inlier_number, point_number, sample_size))

    # H(|L∗|, µ)
    def __getIterationNumber(self, inlier_number, point_number, sample_size):
        """ 计算当前内点数目期望的迭代数目 """
        inlier_ratio = float(inlier_number) / point_number  # η
        probability = inlier_ratio ** sample_size
        if probability < sys.float_info.epsilon or self.settings.confidence >= 1.0:
            return sys.maxsize
        if probability >= 1.0 - sys.float_info.epsilon or self.settings.confidence <= 0.0:
            return 1
        log1 = m.log(1.0 - self.settings.confidence)
        log2 = m.log(1.0 - probability)
        return max(1, m.ceil(log1 / log2))
