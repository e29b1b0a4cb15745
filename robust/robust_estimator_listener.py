class RobustEstimatorListener:
    """ 鲁棒估计过程的监听器

    所有回调都在调用 estimate() 的线程上同步执行，参数 estimator 为正在估计的估计器，
    回调中可以读取它的状态，但修改设置会抛出 LockedError。
    """

    def onEstimateStart(self, estimator):
        """ 估计开始 """
        pass

    def onEstimateEnd(self, estimator):
        """ 估计结束（优化完成后，解锁前） """
        pass

    def onEstimateNextIteration(self, estimator, iteration):
        """ 每次迭代开始时调用，iteration 从 1 开始 """
        pass

    def onEstimateProgressChange(self, estimator, progress):
        """ 估计进度变化，progress 在 [0, 1] 之间 """
        pass
