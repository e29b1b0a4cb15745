import sys

import numpy as np
import pytest

from robust import (PinholeCameraRobustEstimator, RobustEstimatorListener,
                    RobustEstimatorMethod)
from utils.exceptions import (ErrorKind, LockedError, NotReadyError,
                              PreconditionError, RobustEstimatorError)
from utils.score import MedianScoringFunction, MSACScoringFunction
from utils_helper import generatePinholeCameraData


@pytest.fixture
def camera_data():
    return generatePinholeCameraData(point_number=100, outlier_ratio=0.2, seed=11)


def mutatingCalls(robust_estimator, data):
    """ 所有修改估计器状态的调用 """
    return {
        "setListener": lambda: robust_estimator.setListener(None),
        "setMethod": lambda: robust_estimator.setMethod(RobustEstimatorMethod.RANSAC),
        "setQualityScores": lambda: robust_estimator.setQualityScores(data["quality_scores"]),
        "setThreshold": lambda: robust_estimator.setThreshold(2.0),
        "setStopThreshold": lambda: robust_estimator.setStopThreshold(2.0),
        "setConfidence": lambda: robust_estimator.setConfidence(0.5),
        "setMaxIterations": lambda: robust_estimator.setMaxIterations(10),
        "setProgressDelta": lambda: robust_estimator.setProgressDelta(0.5),
        "setResultRefined": lambda: robust_estimator.setResultRefined(False),
        "setCovarianceKept": lambda: robust_estimator.setCovarianceKept(True),
        "setFastRefinementUsed": lambda: robust_estimator.setFastRefinementUsed(True),
        "setWeakMinimumSizeAllowed": lambda: robust_estimator.setWeakMinimumSizeAllowed(False),
        "setMaxIterationsFailureEnabled": lambda: robust_estimator.setMaxIterationsFailureEnabled(True),
        "setQualityWeightedMedianUsed": lambda: robust_estimator.setQualityWeightedMedianUsed(True),
        "setSeed": lambda: robust_estimator.setSeed(1),
        "setPoints": lambda: robust_estimator.setPoints(data["points3D"], data["points2D"]),
        "setNormalizationEnabled": lambda: robust_estimator.setNormalizationEnabled(False),
        "setLMSESolutionAllowed": lambda: robust_estimator.setLMSESolutionAllowed(True),
        "setSuggestSkewnessValueEnabled": lambda: robust_estimator.setSuggestSkewnessValueEnabled(True),
        "setSuggestedSkewnessValue": lambda: robust_estimator.setSuggestedSkewnessValue(0.0),
        "setSuggestHorizontalFocalLengthEnabled": lambda: robust_estimator.setSuggestHorizontalFocalLengthEnabled(True),
        "setSuggestedHorizontalFocalLengthValue": lambda: robust_estimator.setSuggestedHorizontalFocalLengthValue(100.0),
        "setSuggestVerticalFocalLengthEnabled": lambda: robust_estimator.setSuggestVerticalFocalLengthEnabled(True),
        "setSuggestedVerticalFocalLengthValue": lambda: robust_estimator.setSuggestedVerticalFocalLengthValue(100.0),
        "setSuggestAspectRatioEnabled": lambda: robust_estimator.setSuggestAspectRatioEnabled(True),
        "setSuggestedAspectRatioValue": lambda: robust_estimator.setSuggestedAspectRatioValue(1.0),
        "setSuggestPrincipalPointEnabled": lambda: robust_estimator.setSuggestPrincipalPointEnabled(True),
        "setSuggestedPrincipalPointValue": lambda: robust_estimator.setSuggestedPrincipalPointValue([0.0, 0.0]),
        "setSuggestRotationEnabled": lambda: robust_estimator.setSuggestRotationEnabled(True),
        "setSuggestedRotationValue": lambda: robust_estimator.setSuggestedRotationValue(np.eye(3)),
        "setSuggestCenterEnabled": lambda: robust_estimator.setSuggestCenterEnabled(True),
        "setSuggestedCenterValue": lambda: robust_estimator.setSuggestedCenterValue([0.0, 0.0, 0.0]),
        "setMinMaxSuggestionWeight": lambda: robust_estimator.setMinMaxSuggestionWeight(0.2, 1.0),
        "setMinSuggestionWeight": lambda: robust_estimator.setMinSuggestionWeight(0.2),
        "setMaxSuggestionWeight": lambda: robust_estimator.setMaxSuggestionWeight(3.0),
        "setSuggestionWeightStep": lambda: robust_estimator.setSuggestionWeightStep(0.5),
        "estimate": lambda: robust_estimator.estimate(),
    }


class LockCheckingListener(RobustEstimatorListener):
    """ 在每个回调中尝试修改估计器，记录是否被拒绝 """

    def __init__(self, data):
        self.data = data
        self.events = []
        self.unlocked_calls = set()

    def __check(self, estimator):
        assert estimator.isLocked()
        for name, call in mutatingCalls(estimator, self.data).items():
            try:
                call()
            except LockedError as e:
                assert e.kind == ErrorKind.LOCKED
            else:
                self.unlocked_calls.add(name)

    def onEstimateStart(self, estimator):
        self.events.append("start")
        self.__check(estimator)

    def onEstimateEnd(self, estimator):
        self.events.append("end")
        self.__check(estimator)

    def onEstimateNextIteration(self, estimator, iteration):
        self.events.append(("iteration", iteration))
        if iteration == 1:
            self.__check(estimator)

    def onEstimateProgressChange(self, estimator, progress):
        assert 0.0 <= progress <= 1.0
        self.events.append(("progress", progress))


def test_setters_are_locked_inside_listener_callbacks(camera_data):
    listener = LockCheckingListener(camera_data)
    robust_estimator = PinholeCameraRobustEstimator(camera_data["points3D"],
                                                    camera_data["points2D"],
                                                    quality_scores=camera_data["quality_scores"],
                                                    listener=listener,
                                                    seed=0)
    robust_estimator.estimate()

    assert listener.unlocked_calls == set()
    assert listener.events[0] == "start"
    assert listener.events[-1] == "end"
    iterations = [event[1] for event in listener.events if isinstance(event, tuple) and event[0] == "iteration"]
    assert iterations == list(range(1, len(iterations) + 1))
    assert not robust_estimator.isLocked()


def test_setters_work_before_and_after_estimate(camera_data):
    robust_estimator = PinholeCameraRobustEstimator(camera_data["points3D"],
                                                    camera_data["points2D"],
                                                    quality_scores=camera_data["quality_scores"],
                                                    seed=0)
    calls = mutatingCalls(robust_estimator, camera_data)
    calls.pop("estimate")
    for call in calls.values():
        call()
    robust_estimator.setMaxIterations(5000)
    robust_estimator.setNormalizationEnabled(True)
    robust_estimator.setResultRefined(True)
    robust_estimator.estimate()
    assert robust_estimator.getCovariance() is None
    for call in calls.values():
        call()
    assert robust_estimator.getThreshold() == 2.0
    assert robust_estimator.getMaxIterations() == 10


def test_state_returns_to_idle_after_failure():
    data = generatePinholeCameraData(point_number=20, outlier_ratio=0.0, seed=12)
    points3D = data["points3D"].copy()
    points3D[:, 2] = 1.0  # 共面点，每个样本都退化
    robust_estimator = PinholeCameraRobustEstimator(points3D,
                                                    data["points2D"],
                                                    method=RobustEstimatorMethod.RANSAC,
                                                    max_iterations=20,
                                                    seed=0)
    with pytest.raises(RobustEstimatorError) as e:
        robust_estimator.estimate()
    assert e.value.kind == ErrorKind.ESTIMATION_FAILED
    assert not robust_estimator.isLocked()
    assert robust_estimator.statistics.degenerate_sample_number == 20
    assert robust_estimator.getInliersData() is None


def test_boundary_validation(camera_data):
    robust_estimator = PinholeCameraRobustEstimator()
    for value in (-0.1, 1.1):
        with pytest.raises(PreconditionError):
            robust_estimator.setConfidence(value)
    for value in (0.0, -1.0):
        with pytest.raises(PreconditionError):
            robust_estimator.setThreshold(value)
        with pytest.raises(PreconditionError):
            robust_estimator.setStopThreshold(value)
    for value in (0, -5):
        with pytest.raises(PreconditionError):
            robust_estimator.setMaxIterations(value)
    with pytest.raises(PreconditionError):
        robust_estimator.setProgressDelta(1.5)
    with pytest.raises(PreconditionError):
        robust_estimator.setMinMaxSuggestionWeight(2.0, 1.0)
    with pytest.raises(PreconditionError):
        robust_estimator.setSuggestionWeightStep(0.0)

    robust_estimator.setConfidence(0.0)
    robust_estimator.setConfidence(1.0)
    assert robust_estimator.getConfidence() == 1.0


def test_mismatched_or_insufficient_correspondences(camera_data):
    with pytest.raises(PreconditionError):
        PinholeCameraRobustEstimator(camera_data["points3D"], camera_data["points2D"][:-1])
    with pytest.raises(PreconditionError):
        PinholeCameraRobustEstimator(camera_data["points3D"][:5], camera_data["points2D"][:5])
    robust_estimator = PinholeCameraRobustEstimator(camera_data["points3D"], camera_data["points2D"])
    with pytest.raises(PreconditionError):
        robust_estimator.setQualityScores(camera_data["quality_scores"][:-1])


def test_not_ready_without_quality_scores(camera_data):
    robust_estimator = PinholeCameraRobustEstimator(camera_data["points3D"],
                                                    camera_data["points2D"],
                                                    method=RobustEstimatorMethod.PROMEDS)
    assert not robust_estimator.isReady()
    with pytest.raises(NotReadyError) as e:
        robust_estimator.estimate()
    assert e.value.kind == ErrorKind.PRECONDITION
    assert not robust_estimator.isLocked()

    robust_estimator.setMethod(RobustEstimatorMethod.RANSAC)
    assert robust_estimator.isReady()


def test_not_ready_without_points():
    robust_estimator = PinholeCameraRobustEstimator(method=RobustEstimatorMethod.RANSAC)
    with pytest.raises(NotReadyError):
        robust_estimator.estimate()


def test_not_ready_when_rotation_suggestion_has_no_value(camera_data):
    robust_estimator = PinholeCameraRobustEstimator(camera_data["points3D"],
                                                    camera_data["points2D"],
                                                    method=RobustEstimatorMethod.RANSAC)
    robust_estimator.setSuggestRotationEnabled(True)
    assert not robust_estimator.isReady()
    robust_estimator.setSuggestedRotationValue(camera_data["rotation"])
    assert robust_estimator.isReady()


def test_idempotent_configuration(camera_data):
    def run(set_defaults_again):
        robust_estimator = PinholeCameraRobustEstimator(camera_data["points3D"],
                                                        camera_data["points2D"],
                                                        quality_scores=camera_data["quality_scores"],
                                                        method=RobustEstimatorMethod.RANSAC,
                                                        seed=21)
        if set_defaults_again:
            robust_estimator.setThreshold(robust_estimator.getThreshold())
            robust_estimator.setConfidence(robust_estimator.getConfidence())
            robust_estimator.setMaxIterations(robust_estimator.getMaxIterations())
            robust_estimator.setQualityScores(robust_estimator.getQualityScores())
            robust_estimator.setNormalizationEnabled(robust_estimator.isNormalizationEnabled())
        camera = robust_estimator.estimate()
        return camera.descriptor, robust_estimator.getInliersData().inliers, robust_estimator.statistics.iteration_number

    first, second = run(False), run(True)
    assert np.array_equal(first[0], second[0])
    assert np.array_equal(first[1], second[1])
    assert first[2] == second[2]


def test_max_iterations_soft_and_hard_failure(camera_data):
    robust_estimator = PinholeCameraRobustEstimator(camera_data["points3D"],
                                                    camera_data["points2D"],
                                                    method=RobustEstimatorMethod.RANSAC,
                                                    confidence=1.0,
                                                    max_iterations=30,
                                                    seed=2)
    robust_estimator.estimate()
    assert not robust_estimator.isConverged()
    assert robust_estimator.statistics.iteration_number == 30

    robust_estimator.setMaxIterationsFailureEnabled(True)
    with pytest.raises(RobustEstimatorError):
        robust_estimator.estimate()
    assert not robust_estimator.isLocked()


def test_progress_notifications_are_throttled(camera_data):
    class ProgressListener(RobustEstimatorListener):
        def __init__(self):
            self.progress = []

        def onEstimateProgressChange(self, estimator, progress):
            self.progress.append(progress)

    listener = ProgressListener()
    robust_estimator = PinholeCameraRobustEstimator(camera_data["points3D"],
                                                    camera_data["points2D"],
                                                    method=RobustEstimatorMethod.RANSAC,
                                                    listener=listener,
                                                    confidence=1.0,
                                                    max_iterations=40,
                                                    progress_delta=0.25,
                                                    seed=3)
    robust_estimator.estimate()
    assert 1 <= len(listener.progress) <= 4
    assert np.all(np.diff(listener.progress) >= 0.25 - 1e-12)


def test_weak_minimum_size_is_rejected_for_cameras(camera_data):
    robust_estimator = PinholeCameraRobustEstimator(camera_data["points3D"], camera_data["points2D"])
    with pytest.raises(PreconditionError):
        robust_estimator.setWeakMinimumSizeAllowed(True)
    robust_estimator.setWeakMinimumSizeAllowed(False)
    assert not robust_estimator.isWeakMinimumSizeAllowed()
    assert robust_estimator.getMinimumSize() == 6


def test_iteration_bound_only_tightens_for_msac():
    robust_estimator = PinholeCameraRobustEstimator(method=RobustEstimatorMethod.MSAC)
    scoring_function = MSACScoringFunction()
    scoring_function.initialize(1.0, 100, 6)

    # 60 个勉强在阈值内的点，不如 40 个零残差的点
    many_loose = scoring_function.getScore(np.r_[np.full(60, 0.99), np.full(40, 10.0)])
    few_exact = scoring_function.getScore(np.r_[np.zeros(40), np.full(60, 10.0)])
    assert many_loose < few_exact
    assert scoring_function.inlierNumber(few_exact) < scoring_function.inlierNumber(many_loose)

    bound = robust_estimator._tightenIterationBound(sys.maxsize, scoring_function.inlierNumber(many_loose), 100, 6)
    assert bound < sys.maxsize
    tightened = robust_estimator._tightenIterationBound(bound, scoring_function.inlierNumber(few_exact), 100, 6)
    assert tightened <= bound


def test_iteration_bound_only_tightens_for_lmeds():
    robust_estimator = PinholeCameraRobustEstimator(method=RobustEstimatorMethod.LMEDS)
    scoring_function = MedianScoringFunction()
    scoring_function.initialize(1e-6, 100, 6)

    wide = scoring_function.getScore(np.r_[np.full(50, 1.0), np.full(40, 1.5), np.full(10, 100.0)])
    narrow = scoring_function.getScore(np.r_[np.full(55, 0.1), np.full(45, 100.0)])
    assert wide < narrow
    assert scoring_function.inlierNumber(narrow) < scoring_function.inlierNumber(wide)

    bound = robust_estimator._tightenIterationBound(sys.maxsize, scoring_function.inlierNumber(wide), 100, 6)
    tightened = robust_estimator._tightenIterationBound(bound, scoring_function.inlierNumber(narrow), 100, 6)
    assert tightened <= bound


@pytest.mark.parametrize("method", [RobustEstimatorMethod.MSAC, RobustEstimatorMethod.LMEDS])
def test_better_models_are_counted(camera_data, method):
    robust_estimator = PinholeCameraRobustEstimator(camera_data["points3D"],
                                                    camera_data["points2D"],
                                                    method=method,
                                                    seed=4)
    robust_estimator.estimate()
    statistics = robust_estimator.statistics
    assert 1 <= statistics.better_model_number <= statistics.iteration_number
