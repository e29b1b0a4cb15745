import math as m
import logging

import numpy as np

from .sampler import Sampler

logger = logging.getLogger(__name__)


class ProsacSampler(Sampler):
    """ PROSAC 渐进采样器

    数据点按质量得分降序排列（得分相同按原序号），采样集中在逐渐增长的前缀上，
    经过 ransac_convergence_iterations 次采样后退化为全体均匀采样。
    sample() 返回的是原始数据点的序号。
    """

    def __init__(self,
                 container,
                 sample_size,
                 quality_scores,
                 ransac_convergence_iterations=100000,
                 random_generator=None):
        """ 初始化 PROSAC 采样器

        参数
        ----------
        container : numpy
            采样的数据点集
        sample_size : int
            采样的样本数
        quality_scores : numpy
            每个数据点的质量得分，越大越可靠
        ransac_convergence_iterations : int 可选
            prosac 最大迭代次数 T_N
        random_generator : UniformRandomGenerator 可选
            随机数发生器
        """
        super().__init__(container, random_generator)

        self.sample_size = sample_size
        self.ransac_convergence_iterations = ransac_convergence_iterations
        self.kth_sample_number = 1      # prosac 采样迭代次数
        self.subset_size = 0            # 当前采样池的点集大小 n
        self.largest_sample_size = 0    # 最大样本数目
        self.growth_function = []       # PROSAC 增长函数

        quality_scores = np.asarray(quality_scores, dtype=np.float64)
        if len(quality_scores) != self.point_number:
            raise ValueError("Quality scores must have one value per data point")
        # 稳定排序保证得分相同的点按原序号排列
        self.sorted_indices = np.argsort(-quality_scores, kind="stable")

        self.initialized = self.initialize(container)

    def initialize(self, container):
        """ PROSAC 采样初始化 growth_function """
        self.growth_function = [0 for i in range(self.point_number)]

        # 数据点按质量降序排列，T_N 次均匀采样中只包含前 n 个点的平均样本数为
        #                                  n - i
        # T_n = T_N * Product i = 0...m-1 -------, n >= sample size, N = points size
        #                                  N - i
        T_n = self.ransac_convergence_iterations
        for i in range(self.sample_size):
            T_n *= (self.sample_size - i) / (self.point_number - i)

        T_n_prime = 1
        # 递推关系
        #             n + 1
        # T(n+1) = --------- T(n), m is sample size.
        #           n + 1 - m
        # 增长函数 g(t) = min {n, T'_(n) >= t}
        # T'_(n+1) = T'_(n) + (T_(n+1) - T_(n))
        for i in range(self.point_number):
            if i + 1 <= self.sample_size:
                self.growth_function[i] = T_n_prime
                continue
            Tn_plus1 = float(i + 1) * T_n / (i + 1 - self.sample_size)
            self.growth_function[i] = T_n_prime + m.ceil(Tn_plus1 - T_n)
            T_n = Tn_plus1
            T_n_prime = self.growth_function[i]

        self.largest_sample_size = self.sample_size
        self.subset_size = self.sample_size

        # 最后一个点总会被选中，其余点从 [0, subset_size-2] 中选取
        self.random_generator.resetGenerator(0, self.subset_size - 2)
        return True

    def sample(self, pool, sample_size):
        """ 根据给定的采样池和样本大小进行采样

        参数
        ----------
        pool : list(int)
            采样的数据集合的序号池（PROSAC 总是在全体点上采样）
        sample_size : int
            采样的样本数

        返回
        ----------
        list
            采样的数据集合序号列表（原始序号）
        """
        if sample_size != self.sample_size:
            logger.debug("PROSAC sampler was initialized for samples of size %d, not %d",
                         self.sample_size, sample_size)
            self.__incrementIterationNumber()
            return []

        # 超过 T_N 次后与 RANSAC 相同，均匀随机采样
        if self.kth_sample_number > self.ransac_convergence_iterations:
            subset = self.random_generator.generateUniqueRandomSet(sample_size)
        else:
            # 产生 PROSAC 样本 [0, subset_size-2]
            subset = self.random_generator.generateUniqueRandomSet(self.sample_size - 1)
            # 最后一个索引是当前使用的子集末尾的点的索引
            subset.append(self.subset_size - 1)
        self.__incrementIterationNumber()
        return [int(self.sorted_indices[i]) for i in subset]

    def __incrementIterationNumber(self):
        self.kth_sample_number += 1

        # 如果与 RANSAC 完全相同，则设置随机生成器以从所有可能的索引生成值
        if self.kth_sample_number > self.ransac_convergence_iterations:
            self.random_generator.resetGenerator(0, self.point_number - 1)
        # 根据需要增加采样池的大小
        elif (self.subset_size < self.point_number and
              self.kth_sample_number > self.growth_function[self.subset_size - 1]):
            self.__growSubset()

    def __growSubset(self):
        self.subset_size += 1 # n = n + 1
        if self.largest_sample_size < self.subset_size:
            self.largest_sample_size = self.subset_size
        # 重置随机生成器以从当前点子集生成值，但最后一个除外，因为它将始终被使用
        self.random_generator.resetGenerator(0, self.subset_size - 2)
