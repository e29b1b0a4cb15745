import numpy as np

from .sampler import Sampler


class UniformSampler(Sampler):
    """ 均匀随机采样器，RANSAC、MSAC 和 LMedS 使用 """

    def __init__(self, container, random_generator=None):
        super().__init__(container, random_generator)
        self.initialized = self.initialize(container)

    def initialize(self, container):
        self.random_generator.resetGenerator(0, np.shape(container)[0] - 1)
        return True

    def sample(self, pool, sample_size):
        """ 根据给定的采样池和样本大小进行采样

        参数
        ----------
        pool : list(int)
            采样的数据集合的序号池
        sample_size : int
            采样的样本数

        返回
        ----------
        list
            对应点序号列表，池中序号不足时为空列表
        """
        if sample_size > len(pool):
            return []
        # 生成点集序号的随机序列
        subset = self.random_generator.generateUniqueRandomSet(sample_size, max=len(pool) - 1)
        # 用 pool 中的索引替换 subset 索引
        return [int(pool[i]) for i in subset]
