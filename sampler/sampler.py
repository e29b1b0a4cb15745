from utils.uniform_random_generator import UniformRandomGenerator


class Sampler:
    """ 最小样本采样器基类

    container 为打包后的对应点矩阵，每一行是一个对应点，
    采样结果是对应点在 container 中的行号。
    """

    def __init__(self, container, random_generator=None):
        self.container = container
        self.point_number = len(container)
        self.initialized = False
        # 由鲁棒估计器注入，同一个种子得到同样的样本序列
        self.random_generator = random_generator if random_generator is not None else UniformRandomGenerator()

    def initialize(self, container):
        """ 采样前的准备工作，返回是否成功 """
        raise NotImplementedError

    def sample(self, pool, sample_size):
        """ 从序号池中抽取一个不含重复序号的样本

        参数
        ----------
        pool : list(int)
            可用的对应点序号
        sample_size : int
            样本大小，即模型的最小样本数

        返回
        ----------
        list(int)
            对应点序号列表，无法采样时为空列表
        """
        raise NotImplementedError
