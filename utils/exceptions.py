""" 鲁棒估计过程中的错误类型

调用者可以通过异常类型或者 kind 字段区分：
输入错误（PRECONDITION），锁定状态下的修改（LOCKED），
单次迭代的求解失败（SOLVER_FAILURE）以及全局估计失败（ESTIMATION_FAILED）。
"""
from enum import Enum


class ErrorKind(Enum):
    PRECONDITION = "precondition"
    LOCKED = "locked"
    SOLVER_FAILURE = "solver_failure"
    ESTIMATION_FAILED = "estimation_failed"


class RobustEstimationError(Exception):
    """ 所有鲁棒估计错误的基类 """

    kind = None


class PreconditionError(RobustEstimationError, ValueError):
    """ 参数越界、点集长度不匹配等输入错误 """

    kind = ErrorKind.PRECONDITION


class NotReadyError(PreconditionError):
    """ 调用 estimate() 时输入数据尚未准备好 """


class LockedError(RobustEstimationError):
    """ 估计过程中试图修改估计器 """

    kind = ErrorKind.LOCKED

    def __init__(self, message="estimator is locked while estimating"):
        super().__init__(message)


class EstimationFailure(RobustEstimationError):
    """ 最小样本求解失败（样本退化），由鲁棒估计器内部捕获 """

    kind = ErrorKind.SOLVER_FAILURE


class RobustEstimatorError(RobustEstimationError):
    """ 未能找到可靠的模型 """

    kind = ErrorKind.ESTIMATION_FAILED
