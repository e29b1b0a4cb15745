import numpy as np

from utils.exceptions import PreconditionError


class Estimator:
    """ 模型估计器基类

    封装最小样本求解器，并为鲁棒估计器和优化器提供残差计算、
    模型参数化等接口。数据点集的每一行为一个对应点对。
    """

    # 优化时模型参数的个数
    PARAMETER_NUMBER = 0

    def __init__(self, solver):
        self.solver = solver   # 最小样本求解器

    def sampleSize(self):
        """ 估计模型所需的最小样本的大小 """
        return self.solver.sampleSize()

    def setWeakMinimumSizeAllowed(self, allowed):
        """ 是否允许使用弱最小样本，没有弱最小样本的模型只接受 False """
        if allowed:
            raise PreconditionError(f"{type(self).__name__} has no weak minimum sample size")

    def isWeakMinimumSizeAllowed(self):
        return False

    def estimateModel(self, data, sample):
        """ 给定一组数据点，估计最小样本模型

        参数
        ----------
        data : numpy
            输入的数据点集
        sample : list
            用于估计模型的样本点序号列表

        返回
        ----------
        list(Model)
            通过样本估计的模型列表
        """
        return self.solver.estimateModel(data, sample, len(sample))

    def residual(self, data, model):
        """ 给定模型和数据点，计算每个点的误差 (N,) """
        raise NotImplementedError

    def refinementResiduals(self, data, model):
        """ 非线性优化使用的带符号分量残差（一维向量） """
        raise NotImplementedError

    def modelToParameters(self, model):
        """ 模型转换为优化参数向量 """
        raise NotImplementedError

    def parametersToModel(self, parameters):
        """ 优化参数向量转换为模型 """
        raise NotImplementedError

    def gaugeResiduals(self, parameters):
        """ 固定参数化尺度自由度的约束残差 """
        return np.zeros(0)

    def suggestionResiduals(self, parameters, suggestions):
        """ 建议值与当前参数之差 (target - current)，没有建议时为空 """
        return np.zeros(0)

    def isValidSample(self, data, sample):
        """ 在计算模型参数之前判断所选样本是否退化

        参数
        ----------
        data : numpy
            输入的数据点集
        sample : list
            用于估计模型的样本点序号列表

        返回
        ----------
        bool
            样本是否有效
        """
        return len(set(sample)) == len(sample) >= self.sampleSize()

    def isValidModel(self,
                     model,
                     data=None,
                     inliers=None,
                     minimal_sample=None,
                     threshold=None):
        """ 检查模型是否有效，可以是模型结构的几何检查或其他验证

        参数
        ----------
        model : Model
            需要检查的模型
        data : numpy
            输入的数据点集
        inliers : numpy
            需要检查的模型的内点 mask
        minimal_sample : list
            用于估计模型的样本点序号列表
        threshold : float
            决定内点和外点的阈值

        返回
        ----------
        bool
            模型是否有效
        """
        return model is not None and np.all(np.isfinite(model.descriptor))
